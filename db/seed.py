# Insert a demo manager, employee and shift
from datetime import datetime, timedelta, timezone

from sqlmodel import Session, SQLModel, select

from db.session import engine
from models.employee import Employee, default_availability
from models.shift import Shift


def seed_demo():
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        staff = [
            ("manager-1", "Morgan Manager", "manager@example.com", "Manager"),
            ("employee-1", "Eli Employee", "eli@example.com", "Associate"),
            ("employee-2", "Dana Employee", "dana@example.com", "Associate"),
        ]
        for user_id, name, email, position in staff:
            existing = session.exec(select(Employee).where(Employee.email == email)).first()
            if existing:
                print(f"{name} already exists")
                continue
            availability = default_availability()
            for day in ("monday", "tuesday", "wednesday", "thursday", "friday"):
                availability[day]["available"] = True
            session.add(Employee(user_id=user_id, name=name, email=email, position=position, availability=availability))
            print(f"Added {name}")

        if not session.exec(select(Shift).where(Shift.employee_id == "employee-1")).first():
            start = (datetime.now(timezone.utc) + timedelta(days=1)).replace(hour=9, minute=0, second=0, microsecond=0)
            session.add(Shift(employee_id="employee-1", start_time=start, end_time=start + timedelta(hours=8), notes="Opening shift"))
            print("Added demo shift for employee-1")
        else:
            print("Demo shift already exists")

        session.commit()


if __name__ == "__main__":
    seed_demo()
