"""
검색 결과 변환기

엔진 응답(JSON)의 hits.hits 배열을 타입이 있는 결과 레코드로 변환합니다.
디코딩 함수와 결과 타입은 생성 시 주입합니다.
"""

import logging
from typing import Any, Callable, Generic, List, Mapping, TypeVar

from .errors import HitDecodeError
from .models import Hit

logger = logging.getLogger(__name__)

T = TypeVar("T")


def decode_hit(document: Mapping[str, Any]) -> Hit:
    """_id와 _score가 모두 있어야 Hit로 변환. 없으면 HitDecodeError"""
    if not isinstance(document, Mapping) or "_id" not in document or "_score" not in document:
        raise HitDecodeError(f"Can't convert {document!r} to Hit.", document=document)

    try:
        return Hit(id=str(document["_id"]), score=float(document["_score"]))
    except (TypeError, ValueError) as e:
        raise HitDecodeError(f"Can't convert {document!r} to Hit: {e}", document=document) from e


class ResultTransformer(Generic[T]):
    """
    응답 → 결과 레코드 목록

    사용 예:
        transformer = ResultTransformer(decode_hit)
        hits = transformer.transform(response_body)
    """

    def __init__(self, decoder: Callable[[Mapping[str, Any]], T]):
        self.decoder = decoder

    def transform(self, response: Mapping[str, Any]) -> List[T]:
        """hits.hits 배열의 각 문서를 디코딩. 하나라도 실패하면 예외 전파"""
        hits = (response.get("hits") or {}).get("hits") or []
        return [self.decoder(document) for document in hits]


def hit_transformer() -> ResultTransformer[Hit]:
    """기본 Hit 변환기"""
    return ResultTransformer(decode_hit)
