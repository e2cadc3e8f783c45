class ActionError(Exception):
    """업무 규칙 위반 등 사용자에게 보여줄 오류의 기본 클래스"""

    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'success': False, 'error': self.message}


class InvalidInputError(ActionError):
    """입력값 오류"""
    status_code = 400


class PermissionDeniedError(ActionError):
    """권한 없음"""
    status_code = 403


class NotFoundError(ActionError):
    """대상을 찾을 수 없음"""
    status_code = 404


class InvalidStateError(ActionError):
    """현재 상태에서 허용되지 않는 처리"""
    status_code = 409


class DuplicateError(ActionError):
    """중복 데이터"""
    status_code = 409
