import logging
import time
from datetime import datetime, timezone
import os

LOGS_DIR = os.environ.get('CHAINDISPERSE_LOGS_DIR', 'logs/chaindisperse')


class LazyFileHandler(logging.FileHandler):
    """File handler that creates its directory when the first record is written."""
    def __init__(self, filename: str):
        super().__init__(filename, delay=True)

    def _open(self):
        os.makedirs(os.path.dirname(self.baseFilename), exist_ok=True)
        return super()._open()


logger = logging.getLogger("chaindisperse")

prog_time = datetime.fromtimestamp(time.time(), tz=timezone.utc).strftime('%Y-%m-%d %H-%M-%S')
logger.setLevel(logging.INFO)

console_handler = logging.StreamHandler()
console_handler.setLevel(logging.WARNING)

formatter = logging.Formatter("%(asctime)s - %(module)s - %(levelname)s - %(message)s")
console_handler.setFormatter(formatter)
logger.addHandler(console_handler)

file_handler = LazyFileHandler(f"{LOGS_DIR}/chaindisperse - {prog_time}.log")
file_handler.setLevel(logging.INFO)
file_handler.setFormatter(formatter)
logger.addHandler(file_handler)
