"""
swapsearch 설정

엔진 접속 정보와 벌크 쓰기 관련 설정을 환경변수(.env 포함)에서 읽어옵니다.
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv

load_dotenv()

# 기본값
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 9200
DEFAULT_SCHEME = "http"
DEFAULT_TIMEOUT = 30
DEFAULT_BULK_CHUNK_SIZE = 500

_TRUE_VALUES = ("1", "true", "yes", "on")


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    return int(value)


@dataclass
class ESSettings:
    """Elasticsearch 접속/쓰기 설정"""
    uri: str = f"{DEFAULT_SCHEME}://{DEFAULT_HOST}:{DEFAULT_PORT}"
    username: Optional[str] = None
    password: Optional[str] = None
    timeout: int = DEFAULT_TIMEOUT

    # 벌크 쓰기
    max_write_connections: Optional[int] = None
    bulk_parallelism: int = os.cpu_count() or 1
    bulk_chunk_size: int = DEFAULT_BULK_CHUNK_SIZE

    # 7.x 이전 엔진: 매핑을 문서 타입 아래에 둔다
    legacy_mapping_types: bool = False

    @property
    def basic_auth(self) -> Optional[Tuple[str, str]]:
        """username/password가 모두 있을 때만 basic auth 튜플 반환"""
        if self.username and self.password:
            return (self.username, self.password)
        return None

    @classmethod
    def from_env(cls) -> "ESSettings":
        """환경변수에서 설정 로드

        ES_URI가 없으면 ES_SCHEME/ES_HOST/ES_PORT로 조합합니다.
        """
        uri = os.getenv("ES_URI")
        if not uri:
            scheme = os.getenv("ES_SCHEME", DEFAULT_SCHEME)
            host = os.getenv("ES_HOST", DEFAULT_HOST)
            port = int(os.getenv("ES_PORT", str(DEFAULT_PORT)))
            uri = f"{scheme}://{host}:{port}"

        return cls(
            uri=uri,
            username=os.getenv("ES_USERNAME") or None,
            password=os.getenv("ES_PASSWORD") or None,
            timeout=int(os.getenv("ES_TIMEOUT", str(DEFAULT_TIMEOUT))),
            max_write_connections=_optional_int("ES_MAX_WRITE_CONNECTIONS"),
            bulk_parallelism=_optional_int("ES_BULK_PARALLELISM") or os.cpu_count() or 1,
            bulk_chunk_size=int(os.getenv("ES_BULK_CHUNK_SIZE", str(DEFAULT_BULK_CHUNK_SIZE))),
            legacy_mapping_types=os.getenv("ES_LEGACY_MAPPING_TYPES", "false").lower() in _TRUE_VALUES,
        )
