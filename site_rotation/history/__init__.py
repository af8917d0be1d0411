"""
site_rotation.history: the injection log domain.

Modules:
  store    — HistoryStore (append, undo, delete, note edit, import/export)
             and the UndoRecord it arms.
  transfer — Import/export normalization shared by file import and the
             startup load of the persisted log.
"""
