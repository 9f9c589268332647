from datetime import date, timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.future import select

from edubrain.exceptions import NotFoundError, ValidationError
from edubrain.models import Payment, PaymentStatus, User
from edubrain.schemas.finance import StudentCreate, StudentFeeResponse
from edubrain.services import ledger
from edubrain.services.auth import verify_password
from edubrain.services.reminders import select_due_for_reminder

pytestmark = pytest.mark.anyio


@pytest.mark.parametrize(
    "total_fee, paid_amount, expected",
    [
        ("1000", "0", PaymentStatus.PENDING),
        ("1000", "999.99", PaymentStatus.PENDING),
        ("1000", "1000", PaymentStatus.PAID),
        ("1000", "1500", PaymentStatus.PAID),
        ("0", "0", PaymentStatus.PAID),
    ],
)
async def test_compute_status(total_fee, paid_amount, expected):
    assert ledger.compute_status(Decimal(total_fee), Decimal(paid_amount)) is expected


async def test_register_creates_account_and_pending_record(register_student, session_factory):
    student_fee, credential = await register_student(name="Ravi Kumar", total_fee="5000")

    assert student_fee.paid_amount == Decimal("0")
    assert student_fee.payment_status == PaymentStatus.PENDING.value
    assert student_fee.last_reminder_date is None
    assert credential.username.startswith("ravikumar")
    assert len(credential.username) == len("ravikumar") + 4

    async with session_factory() as db:
        user = (await db.execute(select(User).where(User.id == student_fee.user_id))).scalars().one()
    assert user.role == "student"
    assert user.username == credential.username
    assert user.hashed_password != credential.password
    assert verify_password(credential.password, user.hashed_password)


async def test_register_requires_name_fee_and_due_date():
    with pytest.raises(PydanticValidationError):
        StudentCreate(name="", total_fee=Decimal("100"), due_date=date(2024, 1, 1))
    with pytest.raises(PydanticValidationError):
        StudentCreate(name="Meera", due_date=date(2024, 1, 1))
    with pytest.raises(PydanticValidationError):
        StudentCreate(name="Meera", total_fee=Decimal("100"))
    with pytest.raises(PydanticValidationError):
        StudentCreate(name="Meera", total_fee=Decimal("-1"), due_date=date(2024, 1, 1))


async def test_blank_optional_fields_become_none():
    data = StudentCreate(name="Meera", email="", phone=" ", total_fee=100, due_date="2024-01-01")
    assert data.email is None
    assert data.phone is None


async def test_name_is_trimmed():
    data = StudentCreate(name="  Meera Nair ", total_fee=100, due_date="2024-01-01")
    assert data.name == "Meera Nair"


async def test_fee_record_serializes_from_orm(register_student):
    student_fee, _ = await register_student(total_fee="1500", due_date=date(2024, 1, 1))

    body = StudentFeeResponse.model_validate(student_fee).model_dump(mode="json")

    assert body["name"] == "Asha Verma"
    assert body["due_amount"] == 1500
    assert body["payment_status"] == "Pending"
    assert body["due_date"] == "2024-01-01"


async def claim_username(session_factory, username):
    async with session_factory() as db:
        db.add(User(username=username, hashed_password="not-a-hash", role="student"))
        await db.commit()


async def test_register_retries_when_username_is_claimed_at_insert(register_student, session_factory, monkeypatch):
    # Another registration inserts "asha1234" after the lookup said it was free
    await claim_username(session_factory, "asha1234")

    async def never_taken(db, username):
        return False

    generated = iter(["asha1234", "asha5678"])
    monkeypatch.setattr(ledger, "username_taken", never_taken)
    monkeypatch.setattr(ledger, "generate_username", lambda name: next(generated))

    student_fee, credential = await register_student(name="Asha Verma")

    assert credential.username == "asha5678"
    async with session_factory() as db:
        users = (await db.execute(select(User).where(User.role == "student"))).scalars().all()
        records = await ledger.list_all(db)
    assert sorted(user.username for user in users) == ["asha1234", "asha5678"]
    assert [record.id for record in records] == [student_fee.id]
    assert records[0].user_id == next(user.id for user in users if user.username == "asha5678")


async def test_register_gives_up_after_repeated_username_collisions(register_student, session_factory, monkeypatch):
    await claim_username(session_factory, "asha1234")

    async def never_taken(db, username):
        return False

    monkeypatch.setattr(ledger, "username_taken", never_taken)
    monkeypatch.setattr(ledger, "generate_username", lambda name: "asha1234")

    with pytest.raises(ValidationError):
        await register_student(name="Asha Verma")

    async with session_factory() as db:
        assert await ledger.list_all(db) == []
        users = (await db.execute(select(User).where(User.role == "student"))).scalars().all()
    assert [user.username for user in users] == ["asha1234"]


async def test_apply_payment_marks_paid_when_fully_paid(register_student, session_factory, fetch_student):
    # Scenario A: full payment settles the account for good
    student_fee, _ = await register_student(total_fee="5000", due_date=date(2024, 1, 1))

    async with session_factory() as db:
        updated = await ledger.apply_payment(db, student_fee.id, Decimal("5000"))
    assert updated.payment_status == PaymentStatus.PAID.value
    assert updated.paid_amount == Decimal("5000")

    async with session_factory() as db:
        for offset in range(0, 10):
            due = await select_due_for_reminder(db, date(2024, 1, 1) + timedelta(days=offset))
            assert student_fee.id not in [s.id for s in due]

    stored = await fetch_student(student_fee.id)
    assert stored.payment_status == PaymentStatus.PAID.value


async def test_partial_payment_stays_pending(register_student, session_factory):
    student_fee, _ = await register_student(total_fee="1000")

    async with session_factory() as db:
        updated = await ledger.apply_payment(db, student_fee.id, Decimal("400"))

    assert updated.payment_status == PaymentStatus.PENDING.value
    assert updated.due_amount == Decimal("600")


async def test_payments_are_cumulative(register_student, session_factory, fetch_student):
    split, _ = await register_student(name="Split Payer", total_fee="1000")
    single, _ = await register_student(name="Single Payer", total_fee="1000")

    async with session_factory() as db:
        await ledger.apply_payment(db, split.id, Decimal("250.50"))
    async with session_factory() as db:
        await ledger.apply_payment(db, split.id, Decimal("300.25"))
    async with session_factory() as db:
        await ledger.apply_payment(db, single.id, Decimal("550.75"))

    split = await fetch_student(split.id)
    single = await fetch_student(single.id)
    assert split.paid_amount == single.paid_amount == Decimal("550.75")
    assert split.payment_status == single.payment_status == PaymentStatus.PENDING.value


async def test_overpayment_is_accepted_and_due_goes_negative(register_student, session_factory):
    student_fee, _ = await register_student(total_fee="1000")

    async with session_factory() as db:
        updated = await ledger.apply_payment(db, student_fee.id, Decimal("1200"))

    assert updated.payment_status == PaymentStatus.PAID.value
    assert updated.due_amount == Decimal("-200")


async def test_apply_payment_records_payment_rows(register_student, session_factory, admin_user):
    student_fee, _ = await register_student(total_fee="1000")

    async with session_factory() as db:
        await ledger.apply_payment(db, student_fee.id, Decimal("100"), recorded_by=admin_user.id)
    async with session_factory() as db:
        await ledger.apply_payment(db, student_fee.id, Decimal("200"))
        payments = (
            await db.execute(select(Payment).where(Payment.student_id == student_fee.id).order_by(Payment.id))
        ).scalars().all()

    assert [p.amount for p in payments] == [Decimal("100"), Decimal("200")]
    assert payments[0].recorded_by_user_id == admin_user.id


async def test_apply_payment_unknown_record(session_factory):
    async with session_factory() as db:
        with pytest.raises(NotFoundError):
            await ledger.apply_payment(db, 404, Decimal("10"))


@pytest.mark.parametrize("amount", ["0", "-50"])
async def test_apply_payment_rejects_non_positive_amounts(register_student, session_factory, fetch_student, amount):
    student_fee, _ = await register_student(total_fee="1000")

    async with session_factory() as db:
        with pytest.raises(ValidationError):
            await ledger.apply_payment(db, student_fee.id, Decimal(amount))

    assert (await fetch_student(student_fee.id)).paid_amount == Decimal("0")


async def test_get_by_owner(register_student, session_factory, admin_user):
    student_fee, _ = await register_student()

    async with session_factory() as db:
        found = await ledger.get_by_owner(db, student_fee.user_id)
        assert found.id == student_fee.id
        with pytest.raises(NotFoundError):
            await ledger.get_by_owner(db, admin_user.id)


async def test_list_all_in_registration_order(register_student, session_factory):
    names = ["Zara", "Aman", "Mona"]
    for name in names:
        await register_student(name=name)

    async with session_factory() as db:
        students = await ledger.list_all(db)

    assert [s.name for s in students] == names


async def test_dashboard_stats(register_student, session_factory):
    today = date(2024, 3, 10)
    overdue, _ = await register_student(name="Overdue", total_fee="1000", due_date=date(2024, 3, 1))
    partly, _ = await register_student(name="Partly", total_fee="2000", due_date=date(2024, 4, 1))
    settled, _ = await register_student(name="Settled", total_fee="500", due_date=date(2024, 2, 1))

    async with session_factory() as db:
        await ledger.apply_payment(db, partly.id, Decimal("500"))
    async with session_factory() as db:
        await ledger.apply_payment(db, settled.id, Decimal("700"))

    async with session_factory() as db:
        stats = await ledger.get_dashboard_stats(db, today=today)

    assert stats == {
        "totalStudents": 3,
        "pendingFees": 1000.0 + 1500.0,
        "collectedFees": 500.0 + 700.0,
        "overdueCount": 1,
    }


async def test_dashboard_stats_empty(session_factory):
    async with session_factory() as db:
        stats = await ledger.get_dashboard_stats(db)

    assert stats == {"totalStudents": 0, "pendingFees": 0.0, "collectedFees": 0.0, "overdueCount": 0}
