"""
Elasticsearch 인덱스 관리

물리 인덱스 이름 생성, 생성/삭제/새로고침, 매핑 본문 생성을 담당합니다.
존재 확인이 200/404 이외의 상태를 반환하면 예외를 올리고,
생성/삭제/새로고침 자체의 실패는 로그만 남깁니다.
"""

import logging
import time
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from elasticsearch import Elasticsearch
from elasticsearch.exceptions import ApiError, TransportError

from .config import ESSettings
from .es_transport import check_exists
from .models import FieldMappingLike, normalize_field_mappings

logger = logging.getLogger(__name__)

# 매핑에 없는 필드는 분석하지 않는 문자열로 취급
DEFAULT_FIELD_TYPE = "keyword"

# norms 옵션을 받는 타입
NORMS_TYPES = frozenset({"text", "keyword"})

# 매핑 끝에 항상 붙는 필드 (이전 릴리스에서 만든 인덱스와 매핑 호환)
TRAILING_FIELD = "last"


def epoch_millis() -> int:
    return time.time_ns() // 1_000_000


def new_index_name(alias: str, now: Optional[Callable[[], int]] = None) -> str:
    """alias + "_" + 현재 epoch 밀리초"""
    clock = now or epoch_millis
    return f"{alias}_{clock()}"


def index_created_millis(index_name: str) -> int:
    """인덱스 이름의 밀리초 접미사. 형식이 다르면 -1"""
    _, _, suffix = index_name.rpartition("_")
    return int(suffix) if suffix.isdigit() else -1


def field_mapping_body(engine_type: str, use_norms: bool) -> Dict[str, Any]:
    body: Dict[str, Any] = {"type": engine_type}
    if engine_type in NORMS_TYPES:
        body["norms"] = use_norms
    return body


class ESIndexManager:
    """
    Elasticsearch 인덱스 관리자

    전송 클라이언트는 외부에서 주입하며, 이 클래스가 닫지 않습니다.

    사용 예:
        manager = ESIndexManager(client)
        manager.create_index("users_1700000000000", "user", ["email"], {"email": ("keyword", False)})
    """

    def __init__(self, client: Elasticsearch, settings: Optional[ESSettings] = None):
        self.client = client
        self.settings = settings or ESSettings()

    def build_mappings(
        self,
        doc_type: str,
        field_names: Sequence[str],
        field_mappings: Optional[Mapping[str, FieldMappingLike]] = None,
    ) -> Dict[str, Any]:
        """
        매핑 본문 생성

        Args:
            doc_type: 문서 타입명 (legacy_mapping_types일 때만 매핑에 포함)
            field_names: 매핑할 필드 목록
            field_mappings: {필드: (타입, norms 사용)}

        Returns:
            "mappings" 값으로 들어갈 딕셔너리
        """
        mappings = normalize_field_mappings(field_mappings)
        properties: Dict[str, Any] = {}

        for field_name in field_names:
            mapping = mappings.get(field_name)
            if mapping is not None:
                properties[field_name] = field_mapping_body(mapping.type, mapping.norms)
            else:
                properties[field_name] = field_mapping_body(DEFAULT_FIELD_TYPE, False)

        properties.setdefault(TRAILING_FIELD, {"type": DEFAULT_FIELD_TYPE})

        if self.settings.legacy_mapping_types:
            return {doc_type: {"properties": properties}}
        return {"properties": properties}

    def build_create_body(
        self,
        doc_type: str,
        field_names: Sequence[str],
        field_mappings: Optional[Mapping[str, FieldMappingLike]] = None,
        link_alias: Optional[str] = None,
    ) -> Dict[str, Any]:
        """PUT /{index} 본문. link_alias가 있으면 aliases 절 포함"""
        body: Dict[str, Any] = {
            "mappings": self.build_mappings(doc_type, field_names, field_mappings),
        }
        if link_alias:
            body["aliases"] = {link_alias: {}}
        return body

    def index_exists(self, index_name: str) -> bool:
        """HEAD /{index}"""
        return check_exists(lambda: self.client.indices.exists(index=index_name), f"/{index_name}")

    def create_index(
        self,
        index_name: str,
        doc_type: str,
        field_names: Sequence[str],
        field_mappings: Optional[Mapping[str, FieldMappingLike]] = None,
        refresh: bool = False,
        link_alias: Optional[str] = None,
    ) -> bool:
        """
        인덱스 생성

        이미 있으면 기존 데이터를 덮어쓰지 않고 False를 반환합니다.
        생성 요청 자체가 실패해도 예외 없이 로그만 남기고 True를 반환합니다.

        Args:
            index_name: 인덱스명
            doc_type: 문서 타입명
            field_names: 매핑할 필드 목록
            field_mappings: {필드: (타입, norms 사용)}
            refresh: 생성 후 새로고침 여부
            link_alias: 생성과 동시에 연결할 별칭 (핫스왑 중에는 None)

        Returns:
            생성 시도 여부

        Raises:
            UnexpectedEngineStateError: 존재 확인 상태 코드가 200/404가 아님
        """
        if self.index_exists(index_name):
            logger.warning(
                f"Elasticsearch index: {index_name} wasn't created because it already exists. "
                f"This may be an error. Leaving the old index active."
            )
            return False

        body = self.build_create_body(doc_type, field_names, field_mappings, link_alias)
        logger.info(f"Create index: {index_name}, type={doc_type}, fields={list(field_names)}, alias={link_alias}")

        try:
            self.client.indices.create(index=index_name, body=body)
        except (ApiError, TransportError) as e:
            logger.warning(f"Index {index_name} wasn't created, but may have quietly failed: {e}")
            return True

        logger.info(f"Index created: {index_name}")
        if refresh:
            self.refresh_index(index_name)
        return True

    def delete_index(self, index_name: str, refresh: bool = False) -> bool:
        """
        인덱스 삭제

        Returns:
            인덱스가 없으면 False, 있으면 삭제 요청 결과와 무관하게 True
        """
        if not self.index_exists(index_name):
            logger.info(f"Index does not exist: {index_name}")
            return False

        try:
            self.client.indices.delete(index=index_name)
        except (ApiError, TransportError) as e:
            logger.warning(f"Index {index_name} wasn't deleted, but may have quietly failed: {e}")
            return True

        logger.info(f"Index deleted: {index_name}")
        if refresh:
            self.refresh_index(index_name)
        return True

    def refresh_index(self, index_name: str) -> None:
        """POST /{index}/_refresh (실패는 로그만)"""
        try:
            self.client.indices.refresh(index=index_name)
            logger.info(f"Index refreshed: {index_name}")
        except (ApiError, TransportError) as e:
            logger.warning(f"Failed to refresh index {index_name}: {e}")
