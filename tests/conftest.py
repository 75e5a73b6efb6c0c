from __future__ import annotations

import pytest

from concierge.credentials import Credentials


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(access_token="at-1", refresh_token="rt-1", token_type="Bearer", expiry_unix=4_102_444_800)
