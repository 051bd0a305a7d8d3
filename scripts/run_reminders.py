"""

미납 리마인더 배치 실행 스크립트.

- 스케줄러(cron 등)가 하루 한 번 실행하는 용도
- 활성 기관마다 기관 청구 설정의 리마인더 스케줄(기본 3/7/14일)을 적용한다
- 최대 횟수에 도달한 결제는 관리자 검토 대상으로 표시된다

사용 방법
- (.venv) ~\backend~$ python -m scripts.run_reminders
- (.venv) ~\backend~$ python -m scripts.run_reminders --date 2025-01-15

"""

import argparse
import sys

from dotenv import load_dotenv
load_dotenv()

from app.core.config import settings
from app.core.logging import configure_logging
from app.db.session import SessionLocal
from app.db.store import SqlAlchemyBillingStore
from app.services.billing_config import load_billing_config
from app.services.billing_dates import parse_billing_date
from app.services.reminders import process_organization_reminders


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Send payment reminders for all active organizations")
    parser.add_argument("--date", help="reference date (YYYY-MM-DD), default: today in each organization's timezone")
    args = parser.parse_args(argv)

    configure_logging(settings.LOG_LEVEL)
    today = parse_billing_date(args.date) if args.date else None

    failed = 0
    db = SessionLocal()
    try:
        store = SqlAlchemyBillingStore(db)
        for org in store.list_active_organizations():
            org_id = org.id
            try:
                result = process_organization_reminders(store, org_id, load_billing_config(org), today=today)
            except Exception as e:
                db.rollback()
                print(f"❌ {org_id}: {e}")
                failed += 1
                continue

            mark = "✅" if result.success else "❌"
            print(
                f"{mark} {org_id}: queued={result.reminders_queued} "
                f"review={result.payments_marked_for_review} errors={len(result.errors)}"
            )
            if not result.success:
                failed += 1
    finally:
        db.close()

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
