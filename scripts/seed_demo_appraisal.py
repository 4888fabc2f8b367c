"""
Seed a demo appraisal and cache its calculated model.
"""
import sys
import os
from datetime import date
from decimal import Decimal

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from loan_appraisal.calculations.appraisal import AppraisalCalculator
from loan_appraisal.api.calculations import model_to_response
from loan_appraisal.config import get_settings
from loan_appraisal.db.database import SessionLocal, init_db
from loan_appraisal.db.models import Appraisal

DEMO_NAME = "Demo Duplex Acquisition"


def main():
    init_db()
    db = SessionLocal()

    try:
        existing = db.query(Appraisal).filter(Appraisal.name == DEMO_NAME).first()
        if existing:
            print(f"Appraisal already exists: {existing.name} (ID: {existing.id}). Skipping.")
            return

        appraisal = Appraisal(
            name=DEMO_NAME,
            description="Two-unit rental, 30-year fixed at 6%",
            purchase_price=Decimal("240000.00"),
            total_costs=Decimal("10000.00"),
            down_payment=Decimal("50000.00"),
            loan_term_months=360,
            annual_interest_rate=Decimal("0.06"),
            predicted_start_date=date(2025, 1, 1),
            projected_annual_rental_income=Decimal("21600.00"),
        )
        db.add(appraisal)
        db.flush()

        model = AppraisalCalculator(get_settings().engine_config()).calculate(
            appraisal.to_loan_input()
        )
        appraisal.calculated_model = model_to_response(model).model_dump(mode="json")
        appraisal.calculated_at = model.generated_at
        appraisal.engine_version = model.engine_version
        db.commit()

        print(f"Created appraisal: {appraisal.name} (ID: {appraisal.id})")
        print(f"  Principal: ${model.principal:,.2f}")
        print(f"  Payment: ${model.periodic_payment:,.2f}/month")
        print(f"  Total Interest: ${model.total_interest_paid:,.2f}")
        print(f"  LTV: {model.loan_to_value_ratio:.2%}")
        print(f"  DSCR: {model.debt_service_coverage_ratio:.2f}x")

    except Exception as e:
        db.rollback()
        print(f"Error: {e}")
        raise
    finally:
        db.close()

if __name__ == "__main__":
    main()
