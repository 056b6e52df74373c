from unittest import TestCase

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base
from app.models.user import User
from app.services.user_service import import_users, list_users, update_user_field
from app.utils.error_utils import ConflictError, NotFoundError, ValidationError


class TestUserService(TestCase):
    def setUp(self):
        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(self.engine)
        self.db = sessionmaker(bind=self.engine, autoflush=False)()

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def test_import_skips_rows_without_name_or_email(self):
        result = import_users(self.db, [
            {"name": "Alice", "email": "alice@example.com", "reg_no": "21BCE0001"},
            {"name": "No Email", "email": "", "reg_no": "21BCE0002"},
            {"name": "Bob", "email": "bob@example.com"},
        ])

        self.assertEqual(result, {"created": 2, "updated": 0, "skipped": 1})
        self.assertEqual([u.name for u in list_users(self.db)], ["Alice", "Bob"])

    def test_import_updates_by_email_case_insensitively(self):
        import_users(self.db, [{"name": "Alice", "email": "alice@example.com", "reg_no": "old"}])

        result = import_users(self.db, [
            {"name": "Alice Kim", "email": " ALICE@example.com ", "reg_no": "new"},
            {"name": "   ", "email": "ghost@example.com"},
        ])

        self.assertEqual(result, {"created": 0, "updated": 1, "skipped": 1})
        users = self.db.query(User).all()
        self.assertEqual(len(users), 1)
        self.assertEqual((users[0].name, users[0].reg_no, users[0].email), ("Alice Kim", "new", "alice@example.com"))

    def test_import_duplicate_emails_in_one_batch(self):
        result = import_users(self.db, [
            {"name": "First", "email": "dup@example.com"},
            {"name": "Second", "email": "DUP@example.com"},
        ])

        self.assertEqual(result, {"created": 1, "updated": 1, "skipped": 0})
        self.assertEqual([u.name for u in list_users(self.db)], ["Second"])

    def test_update_user_field(self):
        import_users(self.db, [
            {"name": "Alice", "email": "alice@example.com"},
            {"name": "Bob", "email": "bob@example.com"},
        ])
        alice = self.db.query(User).filter(User.email == "alice@example.com").one()

        self.assertEqual(update_user_field(self.db, alice.id, "reg_no", " 21BCE0001 ").reg_no, "21BCE0001")
        self.assertEqual(update_user_field(self.db, alice.id, "email", "Alice@Example.com").email, "Alice@Example.com")

        with self.assertRaises(ConflictError):
            update_user_field(self.db, alice.id, "email", "BOB@example.com")
        with self.assertRaises(ValidationError):
            update_user_field(self.db, alice.id, "name", "  ")
        with self.assertRaises(ValidationError):
            update_user_field(self.db, alice.id, "coming", "COMING")
        with self.assertRaises(NotFoundError):
            update_user_field(self.db, 999, "name", "Nobody")

    def test_import_is_all_or_nothing(self):
        import_users(self.db, [{"name": "Alice", "email": "alice@example.com", "reg_no": "old"}])
        # 특정 이메일 INSERT 가 실패하도록 만들어 배치 중간 오류를 재현
        self.db.execute(text(
            "CREATE TRIGGER reject_blocked BEFORE INSERT ON users "
            "WHEN NEW.email = 'blocked@example.com' "
            "BEGIN SELECT RAISE(ABORT, 'blocked'); END"
        ))
        self.db.commit()

        with self.assertRaises(SQLAlchemyError):
            import_users(self.db, [
                {"name": "Bob", "email": "bob@example.com"},
                {"name": "Alice Kim", "email": "alice@example.com", "reg_no": "new"},
                {"name": "Blocked", "email": "blocked@example.com"},
            ])

        users = self.db.query(User).all()
        self.assertEqual(len(users), 1)
        self.assertEqual((users[0].name, users[0].reg_no), ("Alice", "old"))
