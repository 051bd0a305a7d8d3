"""
services/membership_status.py

회원권 상태 전이 규칙.

허용되는 전이:
- pending            -> awaiting_signature, waiting_period, current, cancelled
- awaiting_signature -> waiting_period, current, cancelled
- waiting_period     -> current, lapsed, cancelled
- current            -> lapsed, cancelled
- lapsed             -> waiting_period, current, cancelled
- cancelled          -> (없음, 종료 상태)

관리자 강제 변경(override)만 이 표를 무시할 수 있고 감사 로그를 남긴다.

"""

from app.core.exceptions import InvalidStatusTransitionError
from app.models.membership import EnrollmentFeeStatus, MembershipStatus


S = MembershipStatus

ALLOWED_TRANSITIONS: dict[MembershipStatus, frozenset[MembershipStatus]] = {
    S.PENDING: frozenset({S.AWAITING_SIGNATURE, S.WAITING_PERIOD, S.CURRENT, S.CANCELLED}),
    S.AWAITING_SIGNATURE: frozenset({S.WAITING_PERIOD, S.CURRENT, S.CANCELLED}),
    S.WAITING_PERIOD: frozenset({S.CURRENT, S.LAPSED, S.CANCELLED}),
    S.CURRENT: frozenset({S.LAPSED, S.CANCELLED}),
    S.LAPSED: frozenset({S.WAITING_PERIOD, S.CURRENT, S.CANCELLED}),
    S.CANCELLED: frozenset(),
}

# 온보딩(약정서 서명 + 가입비 + 첫 납부) 완료 전 상태
ONBOARDING_STATUSES = (S.PENDING, S.AWAITING_SIGNATURE)


def can_transition(current: MembershipStatus, target: MembershipStatus) -> bool:
    return MembershipStatus(target) in ALLOWED_TRANSITIONS[MembershipStatus(current)]


def ensure_transition(current: MembershipStatus, target: MembershipStatus) -> None:
    if not can_transition(current, target):
        raise InvalidStatusTransitionError(MembershipStatus(current), MembershipStatus(target))


def standing_for(paid_months: int, eligibility_months: int) -> MembershipStatus:
    if paid_months >= eligibility_months:
        return S.CURRENT
    return S.WAITING_PERIOD


def activation_ready(agreement_signed: bool, enrollment_fee_status: EnrollmentFeeStatus, paid_months: int) -> bool:
    return (
        agreement_signed
        and enrollment_fee_status in (EnrollmentFeeStatus.PAID, EnrollmentFeeStatus.WAIVED)
        and paid_months > 0
    )


def status_after_payment(
    current: MembershipStatus,
    *,
    paid_months: int,
    eligibility_months: int,
    agreement_signed: bool,
    enrollment_fee_status: EnrollmentFeeStatus,
) -> MembershipStatus:
    """정산 후 회원권 상태. paid_months / enrollment_fee_status는 정산 반영 후 값."""
    current = MembershipStatus(current)

    if current in ONBOARDING_STATUSES:
        if activation_ready(agreement_signed, enrollment_fee_status, paid_months):
            return standing_for(paid_months, eligibility_months)
        return current

    if current in (S.WAITING_PERIOD, S.LAPSED):
        return standing_for(paid_months, eligibility_months)

    # current / cancelled 는 그대로
    return current
