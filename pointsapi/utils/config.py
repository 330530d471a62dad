"""JSON log output for the API process (CloudWatch friendly)."""

import json
import logging

# LogRecord 기본 속성. 이 외의 extra 필드(tx_hash, position_id 등)는 그대로 출력
_RESERVED = set(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(
            {k: v for k, v in record.__dict__.items() if k not in _RESERVED}
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=False)


def init_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)
    root.setLevel(level.upper())
    # web3 / urllib3 RPC 페이로드 로그는 너무 많다
    for noisy in ("web3", "urllib3"):
        logging.getLogger(noisy).setLevel(max(root.level, logging.WARNING))
