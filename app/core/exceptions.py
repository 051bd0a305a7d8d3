"""
exceptions.py

청구(billing) 도메인 예외 계층.

서비스 계층은 HTTP를 모르고 이 예외만 발생시킨다.
라우터는 BillingError를 잡아서 status_code 그대로 HTTPException으로 바꾼다.

- BillingValidationError : 잘못된/누락된 입력 (변경 전에 거절)       -> 400
- NotFoundError          : 기관/회원권/플랜/결제 없음                -> 404
- ConflictError          : 경쟁에서 짐, 이미 처리됨, 허용 안 된 전이  -> 409
- DependencyError        : DB/결제대행사 호출 실패 (재시도 가능)      -> 503
- ConfigurationError     : 플랫폼 수수료/청구 설정이 잘못됨           -> 500

"""


class BillingError(Exception):
    """Base exception for billing errors."""

    status_code = 500


# ValueError를 같이 상속해서 기존 `except ValueError` 흐름에서도 잡힌다
class BillingValidationError(BillingError, ValueError):
    status_code = 400


class NotFoundError(BillingError):
    status_code = 404


class ConflictError(BillingError):
    status_code = 409


class InvalidStatusTransitionError(ConflictError):
    """Membership status change not allowed by the transition graph."""

    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"cannot change membership status from {current.value} to {target.value}")


class DependencyError(BillingError):
    status_code = 503
    retryable = True


class ConfigurationError(BillingError):
    status_code = 500
