import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

# Ensure project root is on sys.path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from sqlmodel import Session, select

from expenseflow.config import settings
from expenseflow.core.security import hash_password
from expenseflow.database import engine, init_db
from expenseflow.models.company import Company
from expenseflow.models.expense import Expense
from expenseflow.models.user import Role, User
from expenseflow.services.expenses import NewExpenseItem, NewReceipt, submit_expense
from expenseflow.services.reference_data import currency_for_country

DEMO_PASSWORD = "password123"

DEMO_USERS = [
    ("admin@techcorp.com", "Admin User", Role.ADMIN, "Administration", "United States", date(2020, 1, 15)),
    ("manager@techcorp.com", "Manager User", Role.MANAGER, "Sales", "United States", date(2021, 3, 10)),
    ("employee@techcorp.com", "Employee User", Role.EMPLOYEE, "Sales", "India", date(2022, 6, 20)),
]


def get_or_create_user(session: Session, email, name, role, department, country, hire_date, manager_id=None) -> User:
    user = session.exec(select(User).where(User.email == email)).first()
    if user is not None:
        print(f"User {email} already exists.")
        return user
    user = User(
        email=email,
        name=name,
        role=role,
        department=department,
        country=country,
        currency=currency_for_country(country),
        manager_id=manager_id,
        hire_date=hire_date,
        hashed_password=hash_password(DEMO_PASSWORD),
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    print(f"Created {role.value} {email}")
    return user


def main():
    print(f"Database URL: {settings.database_url}")
    init_db()
    with Session(engine) as session:
        if session.exec(select(Company)).first() is None:
            session.add(Company(name="TechCorp Inc.", country="United States", currency="USD"))
            session.commit()
            print("Created company TechCorp Inc.")

        admin_row, manager_row, employee_row = DEMO_USERS
        get_or_create_user(session, *admin_row)
        manager = get_or_create_user(session, *manager_row)
        employee = get_or_create_user(session, *employee_row, manager_id=manager.id)

        if session.exec(select(Expense).where(Expense.user_id == employee.id)).first() is not None:
            print("Demo expenses already exist. Nothing to do.")
            return

        submit_expense(
            session,
            user_id=employee.id,
            description="Client meeting in Mumbai",
            items=[
                NewExpenseItem(amount=Decimal("350"), date=date(2024, 1, 15), description="Hotel", category="Accommodation", currency="INR"),
                NewExpenseItem(amount=Decimal("100"), date=date(2024, 1, 15), description="Taxi", category="Transportation", currency="INR"),
            ],
            receipts=[NewReceipt(file_path="receipts/hotel-mumbai.jpg")],
        )
        submit_expense(
            session,
            user_id=employee.id,
            description="Team lunch",
            items=[
                NewExpenseItem(amount=Decimal("1200"), date=date(2024, 2, 2), description="Lunch", category="Meals", currency="INR"),
            ],
        )
        print("Created demo expenses.")
        print(f"Demo users log in with password '{DEMO_PASSWORD}'.")


if __name__ == "__main__":
    main()
