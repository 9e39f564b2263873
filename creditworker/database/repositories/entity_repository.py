from creditworker.database.connection import transaction
from creditworker.parsing.models import ParsedReport

ENTITY_TABLES = ("personal_information", "credit_accounts", "credit_inquiries", "negative_items")


class EntityRepository:
    """Stores the structured entities parsed from a report.

    Entities are regenerated on every extraction run: writes replace the
    report's previous entities inside one transaction.
    """

    def clear(self, report_id: int) -> None:
        with transaction() as conn:
            for table in ENTITY_TABLES:
                conn.execute(f"DELETE FROM {table} WHERE report_id = %s", (report_id,))

    def replace(self, report_id: int, report: ParsedReport) -> None:
        with transaction() as conn:
            for table in ENTITY_TABLES:
                conn.execute(f"DELETE FROM {table} WHERE report_id = %s", (report_id,))

            info = report.personal_info
            if not info.is_empty():
                conn.execute(
                    """
                    INSERT INTO personal_information
                    (report_id, full_name, date_of_birth, current_address,
                     ssn_partial, phone_number)
                    VALUES (%s, %s, %s, %s, %s, %s)
                    ON CONFLICT (report_id) DO UPDATE SET
                        full_name = EXCLUDED.full_name,
                        date_of_birth = EXCLUDED.date_of_birth,
                        current_address = EXCLUDED.current_address,
                        ssn_partial = EXCLUDED.ssn_partial,
                        phone_number = EXCLUDED.phone_number,
                        updated_at = NOW()
                    """,
                    (
                        report_id,
                        info.full_name,
                        info.date_of_birth,
                        info.current_address,
                        info.ssn_partial,
                        info.phone_number,
                    ),
                )

            for account in report.accounts:
                conn.execute(
                    """
                    INSERT INTO credit_accounts
                    (report_id, creditor_name, account_number, account_type,
                     current_balance, credit_limit, account_status, is_negative)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (report_id, creditor_name, account_number) DO NOTHING
                    """,
                    (
                        report_id,
                        account.creditor_name,
                        account.account_number or "",
                        account.account_type,
                        account.current_balance,
                        account.credit_limit,
                        account.account_status,
                        account.is_negative,
                    ),
                )

            for inquiry in report.inquiries:
                conn.execute(
                    """
                    INSERT INTO credit_inquiries
                    (report_id, inquirer_name, inquiry_date, inquiry_type)
                    VALUES (%s, %s, %s, %s)
                    ON CONFLICT (report_id, inquirer_name, inquiry_date) DO NOTHING
                    """,
                    (report_id, inquiry.inquirer_name, inquiry.inquiry_date, inquiry.inquiry_type),
                )

            for item in report.negative_items:
                conn.execute(
                    """
                    INSERT INTO negative_items
                    (report_id, negative_type, description, amount,
                     date_occurred, severity_score)
                    VALUES (%s, %s, %s, %s, %s, %s)
                    ON CONFLICT (report_id, negative_type, description) DO NOTHING
                    """,
                    (
                        report_id,
                        item.negative_type,
                        item.description,
                        item.amount,
                        item.date_occurred,
                        item.severity_score,
                    ),
                )
