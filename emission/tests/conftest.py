# -*- coding: utf-8 -*-
"""
emission.tests.conftest
=======================

Fixtures:
- ``env_clean``   strips EMISSION_* variables so config tests start from defaults
- ``deployment``  unfunded deployment at t=0 (see `emission.tests.build`)
- ``funded``      same, with the full allocation deposited
"""
from __future__ import annotations

import os

import pytest

from emission.tests import Deployment, build


@pytest.fixture
def env_clean(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("EMISSION_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def deployment() -> Deployment:
    return build()


@pytest.fixture
def funded() -> Deployment:
    return build(fund=True)
