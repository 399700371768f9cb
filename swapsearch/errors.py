"""
swapsearch 커스텀 예외 클래스
- 엔진 상태 불일치, 디코딩 실패 등 데이터 무결성 관련 오류만 예외로 올린다
- 존재하지 않음(404)은 분기 신호일 뿐 예외가 아님
"""


class SearchEngineError(Exception):
    """검색 엔진 연동 기본 예외"""

    def __init__(self, message: str, index: str = None, details: dict = None):
        self.message = message
        self.index = index
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "index": self.index,
            "details": self.details
        }


class UnexpectedEngineStateError(SearchEngineError):
    """존재 확인(HEAD)이 200/404 이외의 상태를 반환"""

    def __init__(self, message: str, index: str = None, status: int = None, details: dict = None):
        details = dict(details or {})
        if status is not None:
            details["status"] = status
        super().__init__(message, index=index, details=details)
        self.status = status


class EngineConnectionError(SearchEngineError):
    """엔진 연결 실패 (전송 계층)"""

    def __init__(self, message: str = "Elasticsearch 연결 실패", index: str = None, details: dict = None):
        super().__init__(message, index=index, details=details)


class HitDecodeError(SearchEngineError):
    """검색 결과 문서에 _id/_score가 없음"""

    def __init__(self, message: str, document=None, details: dict = None):
        super().__init__(message, details=details)
        self.document = document


class BulkWriteError(SearchEngineError):
    """핫스왑 중 벌크 적재 실패"""

    def __init__(self, message: str, index: str = None, failed: int = 0, details: dict = None):
        details = dict(details or {})
        details["failed"] = failed
        super().__init__(message, index=index, details=details)
        self.failed = failed


class AliasSwapError(SearchEngineError):
    """별칭 전환(_aliases) 요청 실패"""

    def __init__(self, message: str, alias: str = None, index: str = None, details: dict = None):
        details = dict(details or {})
        if alias is not None:
            details["alias"] = alias
        super().__init__(message, index=index, details=details)
        self.alias = alias
