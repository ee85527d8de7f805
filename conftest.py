import pytest


@pytest.fixture(autouse=True)
def _plain_http_test_client(settings):
    # The API tests talk to http://testserver; production security settings
    # would redirect to https and drop session/CSRF cookies.
    settings.SECURE_SSL_REDIRECT = False
    settings.SESSION_COOKIE_SECURE = False
    settings.CSRF_COOKIE_SECURE = False
    settings.SECURE_HSTS_SECONDS = 0

    # Status emails stay off unless a test switches them on
    settings.WORKFLOW_EMAIL_NOTIFICATIONS = False
