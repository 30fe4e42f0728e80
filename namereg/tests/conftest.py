# -*- coding: utf-8 -*-
"""
namereg.tests.conftest
======================

Shared fixtures:
- a manual clock pinned to a fixed timestamp
- stable identities derived from tags (alice, bob, carol, dave)
- a fresh in-memory Registry wired to that clock
"""
from __future__ import annotations

import hashlib
import os

import pytest

from namereg.clock import ManualClock
from namereg.registry import Registry

os.environ.setdefault("TZ", "UTC")

GENESIS_TS = 1_700_000_000


def det_identity(tag: str) -> bytes:
    """Stable 32-byte identity from a tag."""
    return hashlib.sha3_256(b"namereg-tests|" + tag.encode("utf-8")).digest()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(GENESIS_TS)


@pytest.fixture
def alice() -> bytes:
    return det_identity("alice")


@pytest.fixture
def bob() -> bytes:
    return det_identity("bob")


@pytest.fixture
def carol() -> bytes:
    return det_identity("carol")


@pytest.fixture
def dave() -> bytes:
    return det_identity("dave")


@pytest.fixture
def registry(clock: ManualClock) -> Registry:
    return Registry(clock=clock)
