"""Library Lending - Core Package

This package contains the lending core and its storage layer:
- Media catalog and kinds (media.py, catalog.py)
- Loan policy table (policy.py)
- Borrow records and fine ledger (records.py, borrow_records.py, fines.py)
- Borrowing engine and reporting (borrowing.py, reporting.py)
- Users and sessions (users.py, borrower.py)
- Overdue reminders (notifications.py)
- Database layer (database.py)
"""
