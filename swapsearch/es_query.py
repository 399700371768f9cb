"""
Elasticsearch 쿼리 컴파일러

구조화된 SearchQuery를 Elasticsearch query DSL로 변환합니다.
bool 쿼리 아래 should/must/must_not 배열만 만드는 얇은 부분집합이며,
엔진 쿼리 언어 전체를 노출하지 않습니다.
"""

import logging
from typing import Any, Dict, List, Mapping, Sequence

from elasticsearch.serializer import JsonSerializer

from .models import Matcher, SearchQuery

logger = logging.getLogger(__name__)

# 정렬 필드가 매핑되지 않은 문서에서도 정렬이 실패하지 않도록 지정하는 타입
UNMAPPED_SORT_TYPE = "double"


def matchers_to_clauses(clauses: Mapping[str, Sequence[Matcher]]) -> List[Dict[str, Any]]:
    """{절 이름: [Matcher]} → [{절 이름: {matcher.name: values, boost?}}, ...]"""
    result = []
    for clause_name, matchers in clauses.items():
        for matcher in matchers:
            body: Dict[str, Any] = {matcher.name: list(matcher.values)}
            if matcher.boost is not None:
                body["boost"] = matcher.boost
            result.append({clause_name: body})
    return result


def build_sort(sort_by: str) -> List[Dict[str, Any]]:
    """관련도 내림차순 → sort_by 내림차순"""
    return [
        {"_score": {"order": "desc"}},
        {sort_by: {"unmapped_type": UNMAPPED_SORT_TYPE, "order": "desc"}},
    ]


class QueryCompiler:
    """
    SearchQuery → Elasticsearch DSL 변환기

    직렬화기는 생성 시 명시적으로 주입합니다 (기본: elasticsearch JsonSerializer).

    사용 예:
        compiler = QueryCompiler()
        body = compiler.build(query)        # dict
        text = compiler.compile(query)      # JSON 문자열
    """

    def __init__(self, serializer=None):
        self.serializer = serializer or JsonSerializer()

    def build(self, query: SearchQuery) -> Dict[str, Any]:
        """쿼리 본문(dict) 생성. 세 절이 모두 비어 있으면 빈 객체"""
        if query.is_empty:
            return {}

        return {
            "size": query.size,
            "from": query.from_,
            "query": {
                "bool": {
                    "should": matchers_to_clauses(query.should),
                    "must": matchers_to_clauses(query.must),
                    "must_not": matchers_to_clauses(query.must_not),
                }
            },
            "sort": build_sort(query.sort_by),
        }

    def dumps(self, body: Mapping[str, Any]) -> str:
        data = self.serializer.dumps(body)
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        return data

    def compile(self, query: SearchQuery) -> str:
        """쿼리를 JSON 문자열로 컴파일"""
        text = self.dumps(self.build(query))
        logger.info(f"Query to search engine: {text}")
        return text
