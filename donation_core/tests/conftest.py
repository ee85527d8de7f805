# donation_core/tests/conftest.py

from __future__ import annotations

import uuid
from typing import Callable, Iterable, Optional, Tuple

import pytest
from django.contrib.auth import authenticate, get_user_model
from rest_framework.test import APIClient

from donation_core.models import DonationCase, UserRole
from donation_core.services.decisions import open_case, submit_decision
from donation_core.workflows import ActorRole


def _rand(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


class AuthAPIClient(APIClient):
    """
    Test client that uses force_authenticate for predictable DRF auth.
    """

    _user = None

    def login(self, username: str, password: str, **kwargs) -> bool:  # type: ignore[override]
        user = authenticate(username=username, password=password)
        if not user:
            return False
        self.force_authenticate(user=user)
        self._user = user
        return True

    def logout(self) -> None:  # type: ignore[override]
        # DO NOT call force_authenticate(user=None) here.
        # DRF's force_authenticate(user=None) calls self.logout() internally.
        super().logout()
        self.handler._force_user = None
        self.handler._force_token = None
        self._user = None


@pytest.fixture
def api_client() -> AuthAPIClient:
    return AuthAPIClient()


# ------------------------------------------------------------
# Users and roles
# ------------------------------------------------------------
@pytest.fixture
def make_user(db) -> Callable[..., object]:
    User = get_user_model()

    def _factory(username: str, *roles: str, is_superuser: bool = False, email: str = ""):
        user, _ = User.objects.get_or_create(
            username=username,
            defaults={"is_superuser": is_superuser, "email": email or f"{username}@example.org"},
        )
        user.set_password("pass123")
        user.save(update_fields=["password"])
        for role in roles:
            UserRole.objects.get_or_create(user=user, role=role)
        return user

    return _factory


@pytest.fixture
def user_admin(make_user):
    return make_user("admin", "Admin")


@pytest.fixture
def user_doctor(make_user):
    return make_user("doctor", "Doctor")


@pytest.fixture
def user_donor(make_user):
    return make_user("donor", "Donor")


@pytest.fixture
def user_recipient(make_user):
    return make_user("recipient", "Recipient")


@pytest.fixture
def user_viewer(make_user):
    return make_user("viewer")


# ------------------------------------------------------------
# Cases
# ------------------------------------------------------------
@pytest.fixture
def case_factory(db) -> Callable[..., DonationCase]:
    def _factory(subject_role: str = "DONOR", *, subject=None, subject_ref: Optional[str] = None) -> DonationCase:
        return open_case(
            subject_ref=subject_ref or _rand(subject_role.lower()),
            subject_role=subject_role,
            subject=subject,
        )

    return _factory


@pytest.fixture
def donor_case(case_factory, user_donor) -> DonationCase:
    return case_factory("DONOR", subject=user_donor, subject_ref="donor-uid-1")


@pytest.fixture
def recipient_case(case_factory, user_recipient) -> DonationCase:
    return case_factory("RECIPIENT", subject=user_recipient, subject_ref="recipient-uid-1")


Step = Tuple[ActorRole, str, str]


@pytest.fixture
def drive() -> Callable[[DonationCase, Iterable[Step]], DonationCase]:
    """
    Apply (role, decision, comment) steps through the decision service.
    """

    def _drive(case: DonationCase, steps: Iterable[Step]) -> DonationCase:
        for role, decision, comment in steps:
            submit_decision(case, actor=None, actor_role=role, decision=decision, comment=comment)
        return case

    return _drive


@pytest.fixture
def donor_initially_approved(donor_case, drive) -> DonationCase:
    return drive(
        donor_case,
        [
            (ActorRole.DOCTOR, "approve", "Initial screening fine"),
            (ActorRole.ADMIN, "approve", "Cleared for evaluation"),
        ],
    )


@pytest.fixture
def donor_in_final_review(donor_initially_approved, drive) -> DonationCase:
    return drive(
        donor_initially_approved,
        [
            (ActorRole.DOCTOR, "approve", "Evaluation started"),
            (ActorRole.DOCTOR, "approve", "Evaluation complete"),
            (ActorRole.DOCTOR, "approve", "Submitted for final review"),
        ],
    )


@pytest.fixture
def recipient_approved(recipient_case, drive) -> DonationCase:
    return drive(
        recipient_case,
        [
            (ActorRole.DOCTOR, "approve", "Compatible"),
            (ActorRole.ADMIN, "approve", "Confirmed"),
        ],
    )
