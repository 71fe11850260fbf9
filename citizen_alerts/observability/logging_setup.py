"""
Logging setup for Citizen Alerts.

All modules log through loguru. Each module gets a logger bound to a
dotted area name (citizenalerts.pipeline, citizenalerts.location, ...).
Library loggers that use stdlib logging are routed into loguru.
"""

from __future__ import annotations
import logging
from loguru import logger

ROOT_NAME = "citizenalerts"

# loguru로 넘길 라이브러리 로거
LIBRARY_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "aiohttp.client", "aiosqlite", "asyncio")

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level:<7}</level> | "
    "<magenta>{extra[name]}</magenta> | "
    "<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def _stdout(message) -> None:
    print(message, end="")


class InterceptHandler(logging.Handler):
    """stdlib LogRecord를 loguru로 전달"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # logging 모듈 내부 프레임을 건너뛰어 실제 호출 위치를 찾음
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.bind(name=record.name).opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def _route_library_loggers() -> None:
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for lib in LIBRARY_LOGGERS:
        lib_logger = logging.getLogger(lib)
        lib_logger.handlers = [InterceptHandler()]
        lib_logger.propagate = False


def setup_logging(log_level: str = "INFO", json_logs: bool = False) -> None:
    """
    loguru sink를 구성합니다.

    Args:
        log_level: 최소 로그 레벨
        json_logs: True면 한 줄 JSON(serialize), False면 컬러 콘솔
    """
    logger.remove()
    logger.configure(extra={"name": ROOT_NAME})
    if json_logs:
        logger.add(_stdout, serialize=True, level=log_level.upper(), backtrace=False, diagnose=False)
    else:
        logger.add(
            _stdout,
            format=CONSOLE_FORMAT,
            colorize=True,
            level=log_level.upper(),
            backtrace=True,
            diagnose=False,
        )
    _route_library_loggers()


def setup_logging_dev(log_level: str = "INFO") -> None:
    """개발용 컬러 콘솔 로깅"""
    setup_logging(log_level, json_logs=False)


def get_logger(name: str = ROOT_NAME, **ctx):
    """영역 이름과 추가 컨텍스트를 바인딩한 logger"""
    return logger.bind(name=name, **ctx)


def with_context(**ctx):
    """with 블록 동안 모든 로그에 컨텍스트 추가"""
    return logger.contextualize(**ctx)
