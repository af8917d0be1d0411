"""
Rotation engine: per-point availability, next-site recommendation, and
rolling-window usage metrics.

Modules
-------
status      : status_of() + classify_points() — cooldown classification.
scorer      : ScoreComponents dataclass + compute_score() + build_reasoning()
              — pure functions, no DB or I/O.
recommender : ScoredCandidate dataclass + score_candidates() + suggest()
              + last_used_point().
metrics     : WindowMetrics dataclass + window_metrics() + standard_metrics().

Every function here is a pure function of (history, preferences, now).
Nothing is cached between calls.
"""
