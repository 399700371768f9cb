# swapsearch: Elasticsearch alias lifecycle & query compiler
"""
Elasticsearch 별칭 기반 검색/재색인 모듈

별칭(alias)이라는 고정된 이름 뒤에서 물리 인덱스를 주기적으로 새로 만들고
원자적으로 교체(핫스왑)하며, 구조화된 쿼리를 Elasticsearch DSL로 컴파일합니다.

주요 컴포넌트:
- es_query: SearchQuery → DSL 컴파일러
- es_results: 응답 → Hit 변환기
- es_indices: 인덱스 이름 생성, 생성/삭제/새로고침
- es_aliases: 별칭 → 인덱스 조회
- es_bulk: 쓰기 연결 수를 제한한 병렬 벌크 적재
- es_client: 검색/핫스왑 파사드
"""

from .config import ESSettings
from .errors import (
    AliasSwapError,
    BulkWriteError,
    EngineConnectionError,
    HitDecodeError,
    SearchEngineError,
    UnexpectedEngineStateError,
)
from .es_aliases import AliasResolver
from .es_bulk import BulkStats, BulkWriter
from .es_client import ESSearchClient, HotSwapResult, create_search_client
from .es_indices import ESIndexManager, new_index_name
from .es_query import QueryCompiler
from .es_results import ResultTransformer, decode_hit
from .models import FieldMapping, Hit, Matcher, SearchQuery

__all__ = [
    "ESSettings",
    "SearchEngineError",
    "UnexpectedEngineStateError",
    "EngineConnectionError",
    "HitDecodeError",
    "BulkWriteError",
    "AliasSwapError",
    "AliasResolver",
    "BulkStats",
    "BulkWriter",
    "ESSearchClient",
    "HotSwapResult",
    "create_search_client",
    "ESIndexManager",
    "new_index_name",
    "QueryCompiler",
    "ResultTransformer",
    "decode_hit",
    "FieldMapping",
    "Hit",
    "Matcher",
    "SearchQuery",
]
