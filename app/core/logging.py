import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # SQL 로그는 필요할 때만 직접 올린다
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
