import os
import tempfile

# Antes de importar lumina_pos: nada de SQLite en la raíz del repo
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("AUDIT_DIR", tempfile.mkdtemp(prefix="lumina-audit-"))

import itertools  # noqa: E402
from datetime import datetime, timedelta  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402

from lumina_pos.core.schemas import Product, TaxConfig, Variant  # noqa: E402
from lumina_pos.store import MemoryStore  # noqa: E402


class FakeClock:
    def __init__(self, start=datetime(2025, 1, 15, 9, 0, 0)):
        self.now = start

    def __call__(self):
        self.now = self.now + timedelta(seconds=1)
        return self.now


class SeqIds:
    def __init__(self, prefix="id"):
        self._n = itertools.count(1)
        self.prefix = prefix

    def __call__(self):
        return f"{self.prefix}-{next(self._n)}"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ids():
    return SeqIds()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def tax_excl():
    return TaxConfig(rate=Decimal("0.18"), prices_include_tax=False)


@pytest.fixture
def tax_incl():
    return TaxConfig(rate=Decimal("0.18"), prices_include_tax=True)


@pytest.fixture
def soda():
    return Product(id="p-soda", name="Inca Kola", price=Decimal("15.00"), stock=20)


@pytest.fixture
def shirt():
    return Product(
        id="p-shirt",
        name="Polo",
        price=Decimal("25.00"),
        variants=(
            Variant(id="v-s", name="S", price=Decimal("25.00"), stock=5),
            Variant(id="v-m", name="M", price=Decimal("27.00"), stock=3),
        ),
    )
