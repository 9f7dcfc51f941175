import faulthandler
import os
from typing import Optional


_crash_file_handle: Optional[object] = None


def enable_crash_logging(crash_log_path: Optional[str] = None) -> None:
    global _crash_file_handle
    if _crash_file_handle is not None:
        return
    if crash_log_path is None:
        crash_log_path = os.path.join(os.getcwd(), "logs", "crash.log")
    os.makedirs(os.path.dirname(crash_log_path), exist_ok=True)

    _crash_file_handle = open(crash_log_path, "a", encoding="utf-8")
    faulthandler.enable(file=_crash_file_handle, all_threads=True)
