"""
swapsearch 데이터 모델

- Matcher / SearchQuery: 엔진 독립적인 구조화 쿼리 (Pydantic)
- Hit: 검색 결과 한 건
- FieldMapping: 필드별 엔진 타입과 norms 사용 여부
"""

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, Field


class Matcher(BaseModel):
    """절(clause) 안의 단일 매칭 조건"""
    name: str = Field(..., min_length=1, description="매칭 대상 (보통 필드명)")
    values: List[str] = Field(default_factory=list, description="매칭 값 목록 (순서 유지)")
    boost: Optional[float] = Field(default=None, description="가중치")


class SearchQuery(BaseModel):
    """구조화 검색 쿼리

    should/must/must_not는 {절 이름: [Matcher, ...]} 형태입니다.
    세 절이 모두 비어 있으면 엔진 기본(match_all) 쿼리로 컴파일됩니다.
    """
    should: Dict[str, List[Matcher]] = Field(default_factory=dict)
    must: Dict[str, List[Matcher]] = Field(default_factory=dict)
    must_not: Dict[str, List[Matcher]] = Field(default_factory=dict, alias="mustNot")
    size: int = Field(default=20, ge=0, description="반환할 결과 수")
    from_: int = Field(default=0, ge=0, alias="from", description="시작 위치")
    sort_by: str = Field(default="popRank", alias="sortBy", description="2차 정렬 필드")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "must": {"terms": [{"name": "email", "values": ["a@b.com"]}]},
                "should": {"terms": [{"name": "category", "values": ["book"], "boost": 2.0}]},
                "mustNot": {},
                "size": 10,
                "from": 0,
                "sortBy": "popRank",
            }
        }

    @property
    def is_empty(self) -> bool:
        return not (self.should or self.must or self.must_not)


@dataclass
class Hit:
    """검색 결과 데이터 클래스"""
    id: str
    score: float


@dataclass(frozen=True)
class FieldMapping:
    """필드 매핑 (엔진 타입, norms 사용 여부)"""
    type: str
    norms: bool = False


FieldMappingLike = Union[FieldMapping, Tuple[str, bool]]


def normalize_field_mappings(
    field_mappings: Optional[Mapping[str, FieldMappingLike]],
) -> Dict[str, FieldMapping]:
    """(type, norms) 튜플도 받아 FieldMapping으로 통일"""
    normalized = {}
    for field_name, mapping in (field_mappings or {}).items():
        if isinstance(mapping, FieldMapping):
            normalized[field_name] = mapping
        else:
            engine_type, use_norms = mapping
            normalized[field_name] = FieldMapping(engine_type, bool(use_norms))
    return normalized
