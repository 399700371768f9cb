"""
Elasticsearch 전송 클라이언트 생성 및 상태 확인 헬퍼

전송 클라이언트는 전역 싱글톤이 아니라 호출 측이 명시적으로 만들고 소유합니다.
"""

import logging
from typing import Any, Callable

from elasticsearch import Elasticsearch
from elasticsearch.exceptions import ApiError, TransportError

from .config import ESSettings
from .errors import EngineConnectionError, UnexpectedEngineStateError

logger = logging.getLogger(__name__)

STATUS_FOUND = 200
STATUS_NOT_FOUND = 404


def build_transport(settings: ESSettings) -> Elasticsearch:
    """설정으로 동기 클라이언트 생성 (basic auth 선택)"""
    kwargs = {
        "hosts": [settings.uri],
        "request_timeout": settings.timeout,
    }
    if settings.basic_auth:
        kwargs["basic_auth"] = settings.basic_auth

    logger.info(f"Elasticsearch transport: {settings.uri} (auth={'on' if settings.basic_auth else 'off'})")
    return Elasticsearch(**kwargs)


def response_status(response: Any) -> int:
    return response.meta.status


def response_body(response: Any) -> Any:
    """ObjectApiResponse면 body, 아니면 그대로"""
    return getattr(response, "body", response)


def check_exists(request: Callable[[], Any], target: str) -> bool:
    """
    HEAD 요청으로 존재 여부 확인

    Args:
        request: HEAD 요청을 수행하는 호출 (예: lambda: client.indices.exists(index=...))
        target: 로그/예외용 대상 경로 (예: "/my_index")

    Returns:
        200 → True, 404 → False

    Raises:
        UnexpectedEngineStateError: 그 외 상태 코드
        EngineConnectionError: 전송 계층 실패
    """
    try:
        response = request()
    except ApiError as e:
        if e.meta.status == STATUS_NOT_FOUND:
            return False
        raise UnexpectedEngineStateError(
            f"{target} is invalid: existence check returned status {e.meta.status}",
            index=target,
            status=e.meta.status,
        ) from e
    except TransportError as e:
        raise EngineConnectionError(f"{target} existence check failed: {e}", index=target) from e

    status = response_status(response)
    if status == STATUS_FOUND:
        return True
    if status == STATUS_NOT_FOUND:
        return False
    raise UnexpectedEngineStateError(
        f"{target} is invalid: existence check returned status {status}",
        index=target,
        status=status,
    )
