"""

정기 청구 배치 실행 스크립트.

- 스케줄러(cron 등)가 하루 한 번 실행하는 용도
- 활성 기관 전체를 돌며 납부일이 된 회원권에 인보이스를 생성한다
- 기관 하나가 실패해도 나머지 기관은 계속 처리한다

사용 방법
- 가상환경 접속
- (.venv) ~\backend~$ python -m scripts.run_billing
- (.venv) ~\backend~$ python -m scripts.run_billing --date 2025-01-15 --dry-run

"""

import argparse
import sys

from dotenv import load_dotenv
load_dotenv()

from app.core.config import settings
from app.core.deps import get_fee_schedule
from app.core.logging import configure_logging
from app.db.session import SessionLocal
from app.db.store import SqlAlchemyBillingStore
from app.services.billing_dates import parse_billing_date
from app.services.billing_run import process_all_organizations_billing


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run recurring billing for all active organizations")
    parser.add_argument("--date", help="billing date (YYYY-MM-DD), default: today in each organization's timezone")
    parser.add_argument("--dry-run", action="store_true", help="count invoices without creating them")
    args = parser.parse_args(argv)

    configure_logging(settings.LOG_LEVEL)
    billing_date = parse_billing_date(args.date) if args.date else None

    db = SessionLocal()
    try:
        results = process_all_organizations_billing(
            SqlAlchemyBillingStore(db),
            billing_date=billing_date,
            dry_run=args.dry_run,
            fee_schedule=get_fee_schedule(),
        )
    finally:
        db.close()

    failed = 0
    for org_id, result in results.items():
        mark = "✅" if result.success else "❌"
        print(
            f"{mark} {org_id}: created={result.payments_created} "
            f"skipped={result.skipped} status_updates={result.status_updates} errors={len(result.errors)}"
        )
        if not result.success:
            failed += 1

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
