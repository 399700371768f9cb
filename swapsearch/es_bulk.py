"""
Elasticsearch 벌크 적재

원본 레코드를 새 인덱스로 병렬 벌크 적재합니다.
동시 쓰기 연결 수는 엔진이 감당할 수 있는 수(엔진 코어당 1개)로 제한합니다.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional

from elasticsearch import Elasticsearch
from elasticsearch.helpers import parallel_bulk

from .config import ESSettings

logger = logging.getLogger(__name__)

# 문서 ID로 쓰는 레코드 필드
ID_FIELD = "id"


@dataclass
class BulkStats:
    """벌크 적재 통계"""
    index: str
    total: int
    indexed: int
    failed: int
    elapsed_seconds: float

    @property
    def success_rate(self) -> float:
        if self.total == 0:
            return 0.0
        return (self.indexed / self.total) * 100

    def __str__(self) -> str:
        return (
            f"{self.index}: "
            f"{self.indexed:,}/{self.total:,} "
            f"({self.success_rate:.1f}%) "
            f"in {self.elapsed_seconds:.1f}s"
        )


def plan_parallelism(natural: int, max_write_connections: Optional[int] = None) -> int:
    """
    벌크 쓰기 병렬도 결정

    자연 병렬도가 max_write_connections보다 크면 그 값으로 줄입니다.
    """
    natural = max(1, natural)
    if max_write_connections is not None and natural > max_write_connections:
        logger.info(f"defaultParallelism: {natural}")
        logger.info(
            f"Coalesce to: {max_write_connections} to reduce number of ES connections for bulk write"
        )
        return max(1, max_write_connections)

    logger.info(f"Number of ES connections for bulk write: {natural}")
    return natural


class BulkWriter:
    """
    병렬 벌크 적재기

    사용 예:
        writer = BulkWriter(client)
        stats = writer.write("users_1700000000000", records, parallelism=4)
    """

    def __init__(self, client: Elasticsearch, settings: Optional[ESSettings] = None):
        self.client = client
        self.settings = settings or ESSettings()

    def _generate_actions(
        self,
        index_name: str,
        records: Iterable[Mapping[str, Any]],
        counters: Dict[str, int],
    ) -> Iterator[Dict[str, Any]]:
        """ES bulk 작업 생성 (ID 없는 레코드는 건너뜀)"""
        for record in records:
            counters["total"] += 1
            doc_id = record.get(ID_FIELD)
            if doc_id is None or doc_id == "":
                counters["missing_id"] += 1
                logger.warning(f"Record without '{ID_FIELD}' skipped for {index_name}")
                continue

            yield {
                "_op_type": "index",
                "_index": index_name,
                "_id": str(doc_id),
                "_source": dict(record),
            }

    def write(
        self,
        index_name: str,
        records: Iterable[Mapping[str, Any]],
        parallelism: Optional[int] = None,
    ) -> BulkStats:
        """
        레코드 전체를 index_name에 적재

        같은 ID로 다시 적재하면 덮어쓰므로 실패 후 재실행해도 안전합니다.

        Args:
            index_name: 대상 인덱스
            records: 원본 레코드 (각각 "id" 필드 필요)
            parallelism: 동시 쓰기 스레드 수 (기본: 설정의 bulk_parallelism)

        Returns:
            벌크 적재 통계
        """
        thread_count = parallelism or self.settings.bulk_parallelism
        start_time = datetime.now()
        counters = {"total": 0, "missing_id": 0}
        indexed = 0
        failed = 0

        logger.info(f"Starting bulk write: {index_name} (threads={thread_count})")

        for ok, item in parallel_bulk(
            self.client,
            self._generate_actions(index_name, records, counters),
            thread_count=thread_count,
            chunk_size=self.settings.bulk_chunk_size,
            raise_on_error=False,
            raise_on_exception=False,
        ):
            if ok:
                indexed += 1
            else:
                failed += 1
                if failed <= 3:  # 처음 3개만 로깅
                    logger.warning(f"Bulk error: {item}")

        elapsed = (datetime.now() - start_time).total_seconds()
        stats = BulkStats(
            index=index_name,
            total=counters["total"],
            indexed=indexed,
            failed=failed + counters["missing_id"],
            elapsed_seconds=elapsed,
        )
        logger.info(f"Completed: {stats}")
        return stats
