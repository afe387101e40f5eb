import logging

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

log = logging.getLogger("authsvc")


def setup_logging(level: str = "INFO") -> None:
    """按配置的日志等级（Settings.log_level）初始化根日志。"""
    _level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=_level, format=_FORMAT)
    log.setLevel(_level)
