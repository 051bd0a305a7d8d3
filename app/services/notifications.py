"""
services/notifications.py

회원 알림(이메일 등) 발송 인터페이스.

실제 메일 발송은 외부 서비스 담당이라 여기서는 Notifier Protocol만 정의하고,
기본 구현(LoggingNotifier)은 로그만 남긴다.

승인 후 환영 메일처럼 "실패해도 본 작업은 성공"인 부가 작업은
run_side_effects로 실행하고, 성공/실패 목록(SideEffectReport)을 응답에 담는다.

"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def payment_reminder(self, payment, *, days_overdue: int, reminder_number: int) -> None: ...

    def welcome(self, member, membership) -> None: ...

    def agreement_sent(self, member, membership) -> None: ...


class LoggingNotifier:
    def payment_reminder(self, payment, *, days_overdue: int, reminder_number: int) -> None:
        logger.info(
            "payment reminder queued payment=%s invoice=%s days_overdue=%s reminder=%s",
            payment.id,
            payment.invoice_number,
            days_overdue,
            reminder_number,
        )

    def welcome(self, member, membership) -> None:
        logger.info("welcome email queued member=%s membership=%s", member.id, membership.id)

    def agreement_sent(self, member, membership) -> None:
        logger.info("agreement email queued member=%s membership=%s", member.id, membership.id)


@dataclass
class SideEffectReport:
    succeeded: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)


def run_side_effects(effects: list[tuple[str, Callable[[], None]]]) -> SideEffectReport:
    report = SideEffectReport()
    for name, effect in effects:
        try:
            effect()
        except Exception as e:
            logger.warning("side effect %s failed: %s", name, e)
            report.failed[name] = str(e) or type(e).__name__
        else:
            report.succeeded.append(name)
    return report
