import os
import sys
import threading
from datetime import datetime

_print_lock = threading.Lock()


class OutputCapture:
    """Redirect stdout and stderr into a log file for the duration of a with-block."""

    def __init__(self, log_file='processing.log'):
        self.log_file = log_file
        self.original_stdout = sys.stdout
        self.original_stderr = sys.stderr

    def __enter__(self):
        # Create directory if it doesn't exist
        log_dir = os.path.dirname(self.log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        self.original_stdout = sys.stdout
        self.original_stderr = sys.stderr
        self.log_handle = open(self.log_file, 'w', encoding='utf-8')
        sys.stdout = self.log_handle
        sys.stderr = self.log_handle
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        sys.stdout = self.original_stdout
        sys.stderr = self.original_stderr
        self.log_handle.close()


def log_with_timestamp(message):
    """Print message with timestamp"""
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    # The worker thread logs too; keep lines whole
    with _print_lock:
        print(f"[{timestamp}] {message}", flush=True)
