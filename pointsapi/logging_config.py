import logging.config
import sys


def setup_logging(log_level: str = "INFO", json_output: bool = False):
    """
    배치 스크립트(수익 적립, 입금 백필)용 로깅 설정

    포지션/입금 단위 실패는 WARNING 이상으로 stderr 에 남겨 크론 로그에서 바로 보이게 한다.
    """
    log_level = log_level.upper()
    formatter = "json" if json_output else "batch"

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "batch": {
                    "format": "%(asctime)s | %(levelname)-8s | %(name)-36s | %(message)s",
                },
                "json": {"()": "pointsapi.utils.config.JsonFormatter"},
            },
            "handlers": {
                "stdout": {
                    "class": "logging.StreamHandler",
                    "formatter": formatter,
                    "stream": sys.stdout,
                },
                "failures": {
                    "class": "logging.StreamHandler",
                    "formatter": formatter,
                    "stream": sys.stderr,
                    "level": "WARNING",
                },
            },
            "loggers": {
                "pointsapi": {
                    "handlers": ["stdout", "failures"],
                    "level": log_level,
                    "propagate": False,
                },
                # RPC 요청/응답 전체를 DEBUG 로 남긴다
                "web3": {"handlers": ["failures"], "level": "WARNING", "propagate": False},
                "sqlalchemy.engine": {"level": "WARNING"},
            },
            "root": {"handlers": ["stdout"], "level": log_level},
        }
    )
