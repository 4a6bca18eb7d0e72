"""
Coordination state shared by the reconciliation pass and change propagation
"""

import threading


class SyncGuard:
    """
    Holds two process-wide flags:

    - the re-entrancy flag, set while a reconciliation pass runs, so a second
      pass can't start concurrently;
    - the suppression flag, set for the same duration, so the pass's own local
      writes are not pushed back to the directory.

    A local mutation that starts just before a pass begins can still race the
    pass's local snapshot. That window is accepted.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._reconciling = False
        self._push_suppressed = False

    def try_begin_reconciliation(self) -> bool:
        """Mark a pass as running and suppress pushes. Returns False if a pass is already running."""
        with self._lock:
            if self._reconciling:
                return False
            self._reconciling = True
            self._push_suppressed = True
            return True

    def end_reconciliation(self):
        """Re-enable pushes and release the re-entrancy flag."""
        with self._lock:
            self._push_suppressed = False
            self._reconciling = False

    def is_push_suppressed(self) -> bool:
        return self._push_suppressed

    def is_reconciling(self) -> bool:
        return self._reconciling
