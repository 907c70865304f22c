import logging

LOG_FORMAT = "[BATCH-AUDIT] %(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger("batch_audit").setLevel(level.upper())
