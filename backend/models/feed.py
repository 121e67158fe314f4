"""
Feed message model

Messages travel through Redis as JSON envelopes:
    {"headers": {"Origin-System-Id": "...", "Content-Type": "..."}, "body": "<string>"}
"""
import json
from dataclasses import dataclass, field
from typing import Dict, Optional

ORIGIN_SYSTEM_HEADER = "Origin-System-Id"
CONTENT_TYPE_HEADER = "Content-Type"
REQUEST_ID_HEADER = "X-Request-Id"


@dataclass
class FeedMessage:
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""

    @property
    def origin_system(self) -> Optional[str]:
        return self.headers.get(ORIGIN_SYSTEM_HEADER)

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get(CONTENT_TYPE_HEADER)

    @property
    def request_id(self) -> Optional[str]:
        return self.headers.get(REQUEST_ID_HEADER)

    def to_json(self) -> str:
        return json.dumps({'headers': self.headers, 'body': self.body})

    @classmethod
    def from_json(cls, raw: str) -> 'FeedMessage':
        """
        Parse a queue envelope.

        Raises:
            ValueError: envelope is not a JSON object with string headers/body
        """
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("Feed envelope must be a JSON object")

        headers = data.get('headers') or {}
        body = data.get('body', '')
        if not isinstance(headers, dict) or not isinstance(body, str):
            raise ValueError("Feed envelope has malformed headers or body")

        return cls(headers={str(k): str(v) for k, v in headers.items()}, body=body)
