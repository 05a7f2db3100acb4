"""Tests for account management and the admin tier rules."""

from datetime import datetime, timedelta

import pytest
import pytz

from core.exceptions import (
    BannedError,
    ConflictError,
    EmailDeliveryError,
    ForbiddenError,
    InvalidCredentialsError,
    NotFoundError,
    SessionInvalidatedError,
    ValidationError,
)
from models.enrollment import EnrollmentModel
from models.payment import PaymentModel
from models.purchase_request import PurchaseRequestModel
from models.user import UserModel
from models.verification_token import VerificationTokenModel
from utils.email_sender import Notifier
from utils.user_manager import validate_email
from utils.verification_manager import password_reset_identifier

from conftest import PASSWORD, SUPER_ADMIN_EMAIL, FailingEmailSender, identity_of


class TestValidateEmail:
    def test_normalizes(self):
        assert validate_email("  Jane.Doe@Example.com ") == "jane.doe@example.com"

    @pytest.mark.parametrize(
        "email",
        ["plainaddress", "a@b", "john..doe@example.com", "someone@mailinator.com"],
    )
    def test_rejects(self, email):
        with pytest.raises(ValidationError):
            validate_email(email)


class TestRegistration:
    def test_register_sends_code_and_leaves_email_unverified(self, user_manager, notifier, sender, db):
        user = user_manager.register("Jane", "Jane@Example.com", PASSWORD, notifier)

        assert user.email == "jane@example.com"
        assert user.role == "student"
        assert user.email_verified_at is None
        assert sender.sent[0][0] == "jane@example.com"
        assert db.query(VerificationTokenModel).filter_by(identifier="jane@example.com").count() == 1

    def test_duplicate_email(self, user_manager, notifier, student):
        with pytest.raises(ConflictError):
            user_manager.register("Again", "STUDENT@example.com", PASSWORD, notifier)

    def test_failed_email_leaves_no_account(self, user_manager, db):
        with pytest.raises(EmailDeliveryError):
            user_manager.register("Jane", "jane@example.com", PASSWORD, Notifier(FailingEmailSender()))

        assert db.query(UserModel).filter_by(email="jane@example.com").first() is None
        assert db.query(VerificationTokenModel).count() == 0

    def test_verify_email_with_code(self, user_manager, notifier, sender, authority):
        user_manager.register("Jane", "jane@example.com", PASSWORD, notifier)
        code = sender.last_code("jane@example.com")

        user = user_manager.verify_email("jane@example.com", code)

        assert user.email_verified_at is not None
        assert authority.authenticate("jane@example.com", PASSWORD).user_id == user.user_id

    def test_verify_email_wrong_code(self, user_manager, notifier, sender):
        user_manager.register("Jane", "jane@example.com", PASSWORD, notifier)
        code = sender.last_code("jane@example.com")
        wrong = "000000" if code != "000000" else "111111"

        with pytest.raises(ValidationError):
            user_manager.verify_email("jane@example.com", wrong)

    def test_expired_code_is_rejected_and_removed(self, user_manager, notifier, sender, db):
        user_manager.register("Jane", "jane@example.com", PASSWORD, notifier)
        code = sender.last_code("jane@example.com")
        token = db.query(VerificationTokenModel).one()
        token.expires_at = (datetime.now(pytz.utc) - timedelta(minutes=1)).isoformat()
        db.commit()

        with pytest.raises(ValidationError, match="expired"):
            user_manager.verify_email("jane@example.com", code)
        assert db.query(VerificationTokenModel).count() == 0

    def test_resend_replaces_code(self, user_manager, notifier, sender, db):
        user_manager.register("Jane", "jane@example.com", PASSWORD, notifier)
        user_manager.resend_verification("jane@example.com", notifier)

        assert len(sender.sent) == 2
        assert db.query(VerificationTokenModel).count() == 1

    def test_resend_for_unknown_email_is_silent(self, user_manager, notifier, sender):
        user_manager.resend_verification("ghost@example.com", notifier)
        assert sender.sent == []

    def test_resend_for_verified_email(self, user_manager, notifier, student):
        with pytest.raises(ValidationError):
            user_manager.resend_verification("student@example.com", notifier)


class TestPasswordReset:
    def test_reset_flow_invalidates_sessions(self, user_manager, notifier, sender, authority, student):
        old = authority.authenticate("student@example.com", PASSWORD)

        user_manager.request_password_reset("student@example.com", notifier)
        code = sender.last_code("student@example.com")
        user_manager.reset_password("student@example.com", code, "new-password")

        with pytest.raises(SessionInvalidatedError):
            authority.verify(old.token)
        new = authority.authenticate("student@example.com", "new-password")
        assert new.session_version == old.session_version + 1
        with pytest.raises(InvalidCredentialsError):
            authority.authenticate("student@example.com", PASSWORD)

    def test_code_is_single_use(self, user_manager, notifier, sender, student):
        user_manager.request_password_reset("student@example.com", notifier)
        code = sender.last_code("student@example.com")
        user_manager.reset_password("student@example.com", code, "new-password")

        with pytest.raises(ValidationError):
            user_manager.reset_password("student@example.com", code, "another-one")

    def test_unknown_email_is_silent(self, user_manager, notifier, sender):
        user_manager.request_password_reset("ghost@example.com", notifier)
        assert sender.sent == []

    def test_banned_account_cannot_request_reset(self, user_manager, notifier, db, student):
        student.is_banned = True
        db.commit()
        with pytest.raises(BannedError):
            user_manager.request_password_reset("student@example.com", notifier)

    def test_delivery_failure_keeps_code(self, user_manager, db, student):
        user_manager.request_password_reset(
            "student@example.com", Notifier(FailingEmailSender())
        )
        identifier = password_reset_identifier("student@example.com")
        assert db.query(VerificationTokenModel).filter_by(identifier=identifier).count() == 1


class TestSelfService:
    def test_name_change_invalidates_sessions(self, user_manager, authority, student):
        credential = authority.authenticate("student@example.com", PASSWORD)

        user_manager.update_profile(student.user_id, "New Name", "student@example.com")

        with pytest.raises(SessionInvalidatedError):
            authority.verify(credential.token)

    def test_email_change_invalidates_sessions(self, user_manager, authority, student):
        credential = authority.authenticate("student@example.com", PASSWORD)

        user = user_manager.update_profile(student.user_id, student.name, "renamed@example.com")

        assert user.email == "renamed@example.com"
        with pytest.raises(SessionInvalidatedError):
            authority.verify(credential.token)

    def test_image_only_change_keeps_sessions(self, user_manager, authority, student):
        credential = authority.authenticate("student@example.com", PASSWORD)

        user_manager.update_profile(
            student.user_id, student.name, "student@example.com", image="https://cdn.example.com/a.png"
        )

        assert authority.verify(credential.token).user_id == student.user_id

    def test_taken_email(self, user_manager, student, admin):
        with pytest.raises(ConflictError):
            user_manager.update_profile(student.user_id, "Student", "admin@example.com")

    def test_change_password(self, user_manager, authority, student):
        credential = authority.authenticate("student@example.com", PASSWORD)

        user_manager.change_password(student.user_id, PASSWORD, "brand-new")

        with pytest.raises(SessionInvalidatedError):
            authority.verify(credential.token)
        authority.authenticate("student@example.com", "brand-new")

    def test_change_password_requires_current(self, user_manager, student):
        with pytest.raises(InvalidCredentialsError):
            user_manager.change_password(student.user_id, "wrong", "brand-new")

    def test_cannot_take_unclaimed_super_admin_email(self, user_manager, db, student):
        with pytest.raises(ForbiddenError):
            user_manager.update_profile(student.user_id, student.name, SUPER_ADMIN_EMAIL.upper())

        db.expire_all()
        assert db.query(UserModel).filter_by(user_id=student.user_id).one().email == "student@example.com"

    def test_super_admin_email_freed_by_owner_stays_reserved(self, user_manager, super_admin, student):
        user_manager.update_profile(super_admin.user_id, "Owner", "owner.new@example.com")

        with pytest.raises(ForbiddenError):
            user_manager.update_profile(student.user_id, student.name, SUPER_ADMIN_EMAIL)

    def test_super_admin_keeps_own_email(self, user_manager, super_admin):
        user = user_manager.update_profile(super_admin.user_id, "Renamed Owner", SUPER_ADMIN_EMAIL)
        assert user.email == SUPER_ADMIN_EMAIL


class TestAdministration:
    def test_ban_invalidates_and_blocks(self, user_manager, authority, admin, student):
        credential = authority.authenticate("student@example.com", PASSWORD)

        user = user_manager.ban_user(identity_of(admin), student.user_id, "abuse")

        assert user.is_banned and user.ban_reason == "abuse"
        with pytest.raises(SessionInvalidatedError):
            authority.verify(credential.token)
        with pytest.raises(BannedError):
            authority.authenticate("student@example.com", PASSWORD)

    def test_unban(self, user_manager, authority, admin, student):
        user_manager.ban_user(identity_of(admin), student.user_id)
        user_manager.unban_user(identity_of(admin), student.user_id)
        authority.authenticate("student@example.com", PASSWORD)

    def test_student_cannot_ban(self, user_manager, student, make_user):
        other = make_user("other@example.com")
        with pytest.raises(ForbiddenError):
            user_manager.ban_user(identity_of(student), other.user_id)

    @pytest.mark.parametrize("actor_fixture", ["admin", "super_admin"])
    def test_super_admin_is_untouchable(self, request, user_manager, super_admin, actor_fixture):
        actor = identity_of(request.getfixturevalue(actor_fixture))
        target = super_admin.user_id

        with pytest.raises(ForbiddenError):
            user_manager.ban_user(actor, target)
        with pytest.raises(ForbiddenError):
            user_manager.delete_user(actor, target)
        if actor.is_super_admin:
            with pytest.raises(ForbiddenError):
                user_manager.set_frozen(actor, target, True)

    def test_admin_cannot_freeze(self, user_manager, admin, student):
        with pytest.raises(ForbiddenError):
            user_manager.set_frozen(identity_of(admin), student.user_id, True)

    def test_freeze_invalidates_and_blocks(self, user_manager, authority, super_admin, student):
        credential = authority.authenticate("student@example.com", PASSWORD)

        user_manager.set_frozen(identity_of(super_admin), student.user_id, True)

        with pytest.raises(SessionInvalidatedError):
            authority.verify(credential.token)
        with pytest.raises(BannedError):
            authority.authenticate("student@example.com", PASSWORD)

        user_manager.set_frozen(identity_of(super_admin), student.user_id, False)
        authority.authenticate("student@example.com", PASSWORD)

    def test_admin_cannot_ban_or_delete_admin(self, user_manager, admin, make_user):
        other_admin = make_user("second-admin@example.com", role="admin")
        with pytest.raises(ForbiddenError):
            user_manager.ban_user(identity_of(admin), other_admin.user_id)
        with pytest.raises(ForbiddenError):
            user_manager.delete_user(identity_of(admin), other_admin.user_id)

    def test_super_admin_can_delete_admin(self, user_manager, db, super_admin, admin):
        user_manager.delete_admin(identity_of(super_admin), admin.user_id)
        assert db.query(UserModel).filter_by(user_id=admin.user_id).first() is None

    def test_delete_admin_rejects_students(self, user_manager, super_admin, student):
        with pytest.raises(NotFoundError):
            user_manager.delete_admin(identity_of(super_admin), student.user_id)

    def test_cannot_act_on_self(self, user_manager, admin):
        with pytest.raises(ForbiddenError):
            user_manager.ban_user(identity_of(admin), admin.user_id)

    def test_delete_user_cascades_and_keeps_payments(self, user_manager, db, admin, student):
        now = datetime.now(pytz.utc).isoformat()
        db.add(EnrollmentModel(enrollment_id="e1", user_id=student.user_id, course_id="c1", enrolled_at=now))
        db.add(PaymentModel(payment_id="p1", user_id=student.user_id, course_id="c1", amount=5000, currency="NPR", status="completed", created_at=now))
        db.add(PurchaseRequestModel(request_id="r1", user_id=student.user_id, item_type="course", item_id="c1", item_title="Course", amount=5000, currency="NPR", status="approved", created_at=now))
        db.commit()

        user_manager.delete_user(identity_of(admin), student.user_id)

        db.expire_all()
        assert db.query(UserModel).filter_by(user_id=student.user_id).first() is None
        assert db.query(EnrollmentModel).count() == 0
        assert db.query(PurchaseRequestModel).count() == 0
        payment = db.query(PaymentModel).one()
        assert payment.user_id is None
        assert payment.amount == 5000

    def test_admin_update_user_invalidates(self, user_manager, authority, admin, student):
        credential = authority.authenticate("student@example.com", PASSWORD)

        user_manager.admin_update_user(identity_of(admin), student.user_id, name="Renamed")

        with pytest.raises(SessionInvalidatedError):
            authority.verify(credential.token)

    def test_admin_reset_password(self, user_manager, authority, admin, student):
        credential = authority.authenticate("student@example.com", PASSWORD)

        user_manager.admin_reset_password(identity_of(admin), student.user_id, "from-admin")

        with pytest.raises(SessionInvalidatedError):
            authority.verify(credential.token)
        authority.authenticate("student@example.com", "from-admin")

    def test_list_users_with_enrollment_counts(self, user_manager, db, admin, student):
        now = datetime.now(pytz.utc).isoformat()
        db.add(EnrollmentModel(enrollment_id="e1", user_id=student.user_id, course_id="c1", enrolled_at=now))
        db.add(EnrollmentModel(enrollment_id="e2", user_id=student.user_id, course_id="c2", enrolled_at=now))
        db.commit()

        counts = {u.email: u.enrollment_count for u in user_manager.list_users()}
        assert counts == {"student@example.com": 2, "admin@example.com": 0}
        assert [u.email for u in user_manager.list_users(role="admin")] == ["admin@example.com"]

    def test_create_and_list_admins(self, user_manager, super_admin):
        actor = identity_of(super_admin)
        created = user_manager.create_admin(actor, "Helper", "helper@example.com", PASSWORD)

        assert created.role == "admin"
        assert created.email_verified_at is not None
        assert [a.email for a in user_manager.list_admins(actor)] == ["helper@example.com"]

    def test_admin_cannot_create_admin(self, user_manager, admin):
        with pytest.raises(ForbiddenError):
            user_manager.create_admin(identity_of(admin), "Helper", "helper@example.com", PASSWORD)

    def test_verify_profile_is_super_only(self, user_manager, admin, super_admin, student):
        with pytest.raises(ForbiddenError):
            user_manager.verify_profile(identity_of(admin), student.user_id)
        user = user_manager.verify_profile(identity_of(super_admin), student.user_id)
        assert user.profile_verified is True

    def test_verify_profile_only_for_students(self, user_manager, admin, super_admin):
        with pytest.raises(ForbiddenError):
            user_manager.verify_profile(identity_of(super_admin), admin.user_id)
        with pytest.raises(ForbiddenError):
            user_manager.verify_profile(identity_of(super_admin), super_admin.user_id)

    def test_admin_cannot_move_user_to_super_admin_email(self, user_manager, admin, student):
        with pytest.raises(ForbiddenError):
            user_manager.admin_update_user(identity_of(admin), student.user_id, email=SUPER_ADMIN_EMAIL)

    def test_super_admin_email_cannot_be_registered_or_provisioned(
        self, user_manager, notifier, super_admin
    ):
        with pytest.raises(ForbiddenError):
            user_manager.register("Mallory", SUPER_ADMIN_EMAIL, PASSWORD, notifier)
        with pytest.raises(ForbiddenError):
            user_manager.create_admin(identity_of(super_admin), "Mallory", SUPER_ADMIN_EMAIL, PASSWORD)


class TestEnsureSuperAdmin:
    def test_creates_account(self, user_manager, authority):
        user = user_manager.ensure_super_admin(SUPER_ADMIN_EMAIL, "owner-pass", "Owner")

        assert user.role == "admin"
        credential = authority.authenticate(SUPER_ADMIN_EMAIL, "owner-pass")
        assert authority.verify(credential.token).is_super_admin is True

    def test_repairs_existing_account(self, user_manager, authority, db, make_user):
        model = make_user(SUPER_ADMIN_EMAIL, role="student", verified=False)
        model.is_banned = True
        model.is_frozen = True
        db.commit()

        user_manager.ensure_super_admin(SUPER_ADMIN_EMAIL, "owner-pass", "Owner")

        db.expire_all()
        repaired = db.query(UserModel).filter_by(email=SUPER_ADMIN_EMAIL).one()
        assert repaired.role == "admin"
        assert not repaired.is_banned and not repaired.is_frozen
        authority.authenticate(SUPER_ADMIN_EMAIL, "owner-pass")
