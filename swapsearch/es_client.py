"""
Elasticsearch 검색 클라이언트

별칭(alias) 하나에 대한 검색과 무중단 재색인(핫스왑)을 제공하는 파사드입니다.

- search: 별칭 → 현재 인덱스 조회 후 컴파일된 쿼리 실행
- hot_swap: 새 인덱스 생성 → 병렬 벌크 적재 → 별칭 원자적 전환 → 이전 인덱스 삭제
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Iterable, List, Mapping, Optional, Sequence, Set, TypeVar

from elasticsearch import Elasticsearch
from elasticsearch.exceptions import ApiError, TransportError

from .config import ESSettings
from .errors import (
    AliasSwapError,
    BulkWriteError,
    EngineConnectionError,
    UnexpectedEngineStateError,
)
from .es_aliases import AliasResolver
from .es_bulk import BulkStats, BulkWriter, plan_parallelism
from .es_indices import ESIndexManager, new_index_name
from .es_query import QueryCompiler
from .es_results import ResultTransformer, hit_transformer
from .es_transport import build_transport, response_body
from .models import FieldMappingLike, Hit, SearchQuery

logger = logging.getLogger(__name__)

T = TypeVar("T")

# 별칭별 핫스왑 직렬화 (프로세스 내)
# 락은 제거하지 않음: 별칭 수가 고정된 배포를 전제로 함
_alias_locks: Dict[str, threading.Lock] = {}
_alias_locks_guard = threading.Lock()


def alias_lock(alias: str) -> threading.Lock:
    """별칭별 락 반환 (없으면 생성)"""
    with _alias_locks_guard:
        lock = _alias_locks.get(alias)
        if lock is None:
            lock = _alias_locks[alias] = threading.Lock()
        return lock


@dataclass
class HotSwapResult:
    """핫스왑 결과"""
    alias: str
    new_index: str
    bulk: BulkStats
    old_indices: List[str] = field(default_factory=list)


class ESSearchClient(Generic[T]):
    """
    Elasticsearch 검색 클라이언트

    전송 클라이언트는 생성 시 주입받아 이 객체가 소유하며, close()에서 한 번만 닫습니다.

    사용 예:
        with create_search_client("users") as client:
            client.hot_swap("user", records, ["email"], {"email": ("keyword", False)})
            hits = client.search(query)
    """

    def __init__(
        self,
        alias: str,
        client: Elasticsearch,
        transformer: Optional[ResultTransformer[T]] = None,
        compiler: Optional[QueryCompiler] = None,
        settings: Optional[ESSettings] = None,
        bulk_writer: Optional[BulkWriter] = None,
    ):
        self.alias = alias
        self.client = client
        self.settings = settings or ESSettings()
        self.transformer = transformer or hit_transformer()
        self.compiler = compiler or QueryCompiler()
        self.indices = ESIndexManager(client, self.settings)
        self.aliases = AliasResolver(client)
        self.bulk_writer = bulk_writer or BulkWriter(client, self.settings)
        self._closed = False
        self._close_lock = threading.Lock()

    def __enter__(self) -> "ESSearchClient[T]":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def resolve_alias(self) -> Set[str]:
        """별칭에 연결된 인덱스 집합"""
        return self.aliases.resolve(self.alias)

    def search(self, query: SearchQuery) -> List[T]:
        """
        검색 실행

        엔진 측 실패는 예외 대신 빈 리스트로 처리합니다.
        결과 디코딩 실패(HitDecodeError)는 그대로 전파합니다.

        Args:
            query: 구조화 검색 쿼리

        Returns:
            결과 레코드 리스트
        """
        try:
            index_name = self.aliases.current_index(self.alias)
        except (UnexpectedEngineStateError, EngineConnectionError) as e:
            logger.error(f"Alias {self.alias} could not be resolved: {e}")
            return []

        if index_name is None:
            logger.warning(f"Alias {self.alias} is not bound to any index; returning no hits")
            return []

        body = self.compiler.build(query)
        logger.info(f"Query to search engine: {self.compiler.dumps(body)}")

        try:
            response = self.client.search(index=index_name, body=body)
        except ApiError as e:
            logger.error(f"Query: {query!r} produced status code: {e.meta.status}")
            return []
        except TransportError as e:
            logger.error(f"ES transport error: {e}")
            return []

        results = self.transformer.transform(response_body(response))
        logger.info(f"ES search: alias={self.alias}, index={index_name}, hits={len(results)}")
        return results

    def create_index(
        self,
        doc_type: str,
        field_names: Sequence[str],
        field_mappings: Optional[Mapping[str, FieldMappingLike]] = None,
        refresh: bool = False,
    ) -> bool:
        """새 이름의 인덱스를 만들고 곧바로 별칭에 연결"""
        index_name = new_index_name(self.alias)
        return self.indices.create_index(
            index_name, doc_type, field_names, field_mappings, refresh=refresh, link_alias=self.alias,
        )

    def delete_index(self, refresh: bool = False) -> bool:
        """
        별칭에 연결된 모든 인덱스 삭제

        Returns:
            별칭이 없으면 False, 모든 삭제가 True일 때만 True
        """
        indices = self.aliases.resolve(self.alias)
        if not indices:
            logger.info(f"Alias does not exist: {self.alias}")
            return False

        results = [self.indices.delete_index(index_name, refresh) for index_name in sorted(indices)]
        return all(results)

    def hot_swap(
        self,
        doc_type: str,
        records: Iterable[Mapping[str, Any]],
        field_names: Sequence[str],
        field_mappings: Optional[Mapping[str, FieldMappingLike]] = None,
        max_write_connections: Optional[int] = None,
    ) -> HotSwapResult:
        """
        무중단 재색인

        1. 별칭에 연결하지 않은 새 인덱스 생성
        2. 쓰기 연결 수 제한에 맞춰 병렬 벌크 적재 (record["id"]를 문서 ID로 사용)
        3. 현재 별칭의 이전 인덱스 조회
        4. _aliases 한 번의 요청으로 새 인덱스 add + 이전 인덱스 remove_index
        5. 이전 인덱스 삭제 (이미 없으면 건너뜀)

        같은 별칭의 핫스왑은 프로세스 안에서 한 번에 하나만 실행됩니다.

        Args:
            doc_type: 문서 타입명
            records: 원본 레코드
            field_names: 매핑할 필드 목록
            field_mappings: {필드: (타입, norms 사용)}
            max_write_connections: 동시 벌크 쓰기 연결 상한 (기본: 설정값)

        Returns:
            HotSwapResult

        Raises:
            BulkWriteError: 적재 실패 (새 인덱스는 삭제, 별칭은 그대로)
            AliasSwapError: 별칭 전환 실패 (새 인덱스는 삭제, 이전 인덱스는 유지)
            UnexpectedEngineStateError: 존재 확인 상태 이상 또는 새 인덱스 이름 충돌
        """
        with alias_lock(self.alias):
            new_index = new_index_name(self.alias)
            logger.info(f"Create new index: {new_index}, {doc_type}, {list(field_names)}, {field_mappings}")
            created = self.indices.create_index(
                new_index, doc_type, field_names, field_mappings, refresh=False, link_alias=None,
            )
            if not created:
                # 기존 인덱스(현재 서비스 중일 수 있음)에는 절대 적재하지 않음
                raise UnexpectedEngineStateError(
                    f"Index {new_index} already exists; hot swap of alias {self.alias} aborted",
                    index=new_index,
                )

            limit = max_write_connections
            if limit is None:
                limit = self.settings.max_write_connections
            parallelism = plan_parallelism(self.settings.bulk_parallelism, limit)

            stats = self.bulk_writer.write(new_index, records, parallelism)
            if stats.failed:
                logger.error(f"Bulk write into {new_index} failed for {stats.failed} records; alias {self.alias} unchanged")
                self.indices.delete_index(new_index)
                raise BulkWriteError(
                    f"Bulk write into {new_index} failed for {stats.failed} of {stats.total} records",
                    index=new_index,
                    failed=stats.failed,
                )

            old_indices = sorted(self.aliases.resolve(self.alias) - {new_index})
            live_old = [name for name in old_indices if self.indices.index_exists(name)]

            actions: List[Dict[str, Any]] = [{"add": {"index": new_index, "alias": self.alias}}]
            actions.extend({"remove_index": {"index": name}} for name in live_old)

            try:
                self.client.indices.update_aliases(body={"actions": actions})
            except (ApiError, TransportError) as e:
                logger.error(f"Alias update for {self.alias} failed: {e}; dropping unlinked index {new_index}")
                self.indices.delete_index(new_index)
                raise AliasSwapError(
                    f"Alias {self.alias} could not be moved to {new_index}: {e}",
                    alias=self.alias,
                    index=new_index,
                ) from e

            logger.info(f"Alias {self.alias} -> {new_index} (retired: {live_old})")

            for name in old_indices:
                self.indices.delete_index(name, refresh=False)

            return HotSwapResult(alias=self.alias, new_index=new_index, bulk=stats, old_indices=old_indices)

    def close(self) -> None:
        """전송 클라이언트 종료 (여러 번 호출해도 안전)"""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        self.client.close()


def create_search_client(alias: str, settings: Optional[ESSettings] = None) -> ESSearchClient[Hit]:
    """설정에서 전송 클라이언트를 만들어 Hit 검색 클라이언트 생성"""
    settings = settings or ESSettings.from_env()
    return ESSearchClient(alias, build_transport(settings), transformer=hit_transformer(), settings=settings)
