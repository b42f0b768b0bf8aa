import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level="INFO"):
    """Configure the root logger once for the whole service."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # httpx/grpc are chatty at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
