"""
Elasticsearch 별칭 조회

별칭에 현재 연결된 물리 인덱스 집합을 조회합니다. 캐시하지 않습니다.
"""

import logging
from typing import Optional, Set

from elasticsearch import Elasticsearch
from elasticsearch.exceptions import ApiError, TransportError

from .errors import EngineConnectionError, UnexpectedEngineStateError
from .es_indices import index_created_millis
from .es_transport import check_exists, response_body

logger = logging.getLogger(__name__)


class AliasResolver:
    """별칭 → 물리 인덱스 집합"""

    def __init__(self, client: Elasticsearch):
        self.client = client

    def exists(self, alias: str) -> bool:
        """HEAD /_alias/{alias}"""
        return check_exists(lambda: self.client.indices.exists_alias(name=alias), f"/_alias/{alias}")

    def resolve(self, alias: str) -> Set[str]:
        """
        별칭에 연결된 인덱스 집합 조회

        Returns:
            연결된 인덱스명 집합 (연결 없으면 빈 집합)
        """
        if not self.exists(alias):
            return set()

        try:
            response = self.client.indices.get_alias(name=alias)
        except ApiError as e:
            raise UnexpectedEngineStateError(
                f"/_alias/{alias} could not be read: status {e.meta.status}",
                index=alias,
                status=e.meta.status,
            ) from e
        except TransportError as e:
            raise EngineConnectionError(f"/_alias/{alias} could not be read: {e}", index=alias) from e

        indices = set(response_body(response).keys())
        logger.debug(f"Alias {alias} -> {sorted(indices)}")
        return indices

    def current_index(self, alias: str) -> Optional[str]:
        """연결된 인덱스 중 가장 최근에 만든 것 (없으면 None)"""
        indices = self.resolve(alias)
        if not indices:
            return None
        return max(indices, key=lambda name: (index_created_millis(name), name))
