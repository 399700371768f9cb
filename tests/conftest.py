"""
pytest 공통 fixture 정의
- 메모리 기반 가짜 Elasticsearch (HEAD/GET/PUT/DELETE/_aliases/_search)
- parallel_bulk 모킹
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import itertools
from types import SimpleNamespace
from typing import Any, Dict, List, Set

import pytest
from elasticsearch.exceptions import BadRequestError, NotFoundError

from swapsearch.config import ESSettings


class FakeResponse:
    """ObjectApiResponse / HeadApiResponse 대용"""

    def __init__(self, status: int, body: Any = None):
        self.meta = SimpleNamespace(status=status)
        self.body = body

    def __bool__(self):
        return 200 <= self.meta.status < 300


def api_error(cls, status: int, message: str):
    return cls(message, SimpleNamespace(status=status), {"error": message})


class FakeIndices:
    """client.indices 네임스페이스"""

    def __init__(self, engine: "FakeElasticsearch"):
        self.engine = engine

    def exists(self, index: str):
        self.engine.requests.append(("HEAD", f"/{index}"))
        return FakeResponse(200 if index in self.engine.indices_data else 404)

    def exists_alias(self, name: str):
        self.engine.requests.append(("HEAD", f"/_alias/{name}"))
        return FakeResponse(200 if self.engine.bound(name) else 404)

    def get_alias(self, name: str):
        self.engine.requests.append(("GET", f"/_alias/{name}"))
        bound = self.engine.bound(name)
        if not bound:
            raise api_error(NotFoundError, 404, f"alias [{name}] missing")
        return FakeResponse(200, {index: {"aliases": {name: {}}} for index in bound})

    def create(self, index: str, body: Dict[str, Any]):
        self.engine.requests.append(("PUT", f"/{index}"))
        if index in self.engine.indices_data:
            raise api_error(BadRequestError, 400, "resource_already_exists_exception")
        self.engine.indices_data[index] = {"mappings": body.get("mappings", {}), "docs": {}}
        for alias in (body.get("aliases") or {}):
            self.engine.aliases.setdefault(alias, set()).add(index)
        return FakeResponse(200, {"acknowledged": True, "index": index})

    def delete(self, index: str):
        self.engine.requests.append(("DELETE", f"/{index}"))
        if index not in self.engine.indices_data:
            raise api_error(NotFoundError, 404, "index_not_found_exception")
        self.engine.drop(index)
        return FakeResponse(200, {"acknowledged": True})

    def refresh(self, index: str):
        self.engine.requests.append(("POST", f"/{index}/_refresh"))
        if index not in self.engine.indices_data:
            raise api_error(NotFoundError, 404, "index_not_found_exception")
        return FakeResponse(200, {"_shards": {"failed": 0}})

    def update_aliases(self, body: Dict[str, Any]):
        self.engine.requests.append(("POST", "/_aliases"))
        self.engine.alias_actions.append(body)
        actions = body["actions"]
        # 전부 검증한 뒤 한 번에 적용 (원자성)
        for action in actions:
            (kind, args), = action.items()
            if args["index"] not in self.engine.indices_data:
                raise api_error(NotFoundError, 404, f"no such index [{args['index']}]")
        for action in actions:
            (kind, args), = action.items()
            if kind == "add":
                self.engine.aliases.setdefault(args["alias"], set()).add(args["index"])
            elif kind == "remove_index":
                self.engine.drop(args["index"])
        return FakeResponse(200, {"acknowledged": True})


class FakeElasticsearch:
    """메모리 기반 Elasticsearch 대용"""

    def __init__(self):
        self.indices_data: Dict[str, Dict[str, Any]] = {}
        self.aliases: Dict[str, Set[str]] = {}
        self.requests: List[tuple] = []
        self.alias_actions: List[Dict[str, Any]] = []
        self.search_bodies: List[Dict[str, Any]] = []
        self.indices = FakeIndices(self)
        self.close_calls = 0

    def bound(self, alias: str) -> Set[str]:
        return {index for index in self.aliases.get(alias, set()) if index in self.indices_data}

    def drop(self, index: str):
        self.indices_data.pop(index, None)
        for bound in self.aliases.values():
            bound.discard(index)

    def search(self, index: str, body: Dict[str, Any]):
        self.requests.append(("POST", f"/{index}/_search"))
        self.search_bodies.append(body)
        if index not in self.indices_data:
            raise api_error(NotFoundError, 404, "index_not_found_exception")
        docs = self.indices_data[index]["docs"]
        hits = [
            {"_index": index, "_id": doc_id, "_score": 1.0, "_source": source}
            for doc_id, source in sorted(docs.items())
        ]
        return FakeResponse(200, {"hits": {"total": {"value": len(hits)}, "hits": hits}})

    def bulk_index(self, action: Dict[str, Any]):
        # 인덱스가 없으면 엔진처럼 자동 생성
        target = self.indices_data.setdefault(action["_index"], {"mappings": {}, "docs": {}})
        target["docs"][action["_id"]] = action["_source"]

    def close(self):
        self.close_calls += 1


@pytest.fixture
def fake_es():
    """가짜 Elasticsearch"""
    return FakeElasticsearch()


@pytest.fixture
def settings():
    """테스트용 설정 (병렬도 8, 벌크 청크 100)"""
    return ESSettings(uri="http://localhost:9200", bulk_parallelism=8, bulk_chunk_size=100)


@pytest.fixture
def bulk_calls(monkeypatch):
    """parallel_bulk 모킹: 가짜 엔진에 바로 적용하고 호출 인자를 기록"""
    calls = []

    def fake_parallel_bulk(client, actions, thread_count=4, chunk_size=500, **kwargs):
        calls.append({"thread_count": thread_count, "chunk_size": chunk_size, **kwargs})
        for action in actions:
            client.bulk_index(action)
            yield True, {"index": {"_index": action["_index"], "_id": action["_id"], "status": 201}}

    monkeypatch.setattr("swapsearch.es_bulk.parallel_bulk", fake_parallel_bulk)
    return calls


@pytest.fixture
def tick(monkeypatch):
    """인덱스 이름 시계를 1ms씩 증가시켜 이름 충돌 방지"""
    counter = itertools.count(1_700_000_000_000)
    monkeypatch.setattr("swapsearch.es_indices.epoch_millis", lambda: next(counter))
    return counter
