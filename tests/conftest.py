import os
import sys
from pathlib import Path
import importlib
import pytest

from hypothesis import settings

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Default profile: balanced speed and coverage
settings.register_profile("default", max_examples=100, deadline=None)
# CI profile: more thorough testing
settings.register_profile("ci", max_examples=1000, deadline=None)
# Dev profile: fast iteration
settings.register_profile("dev", max_examples=10, deadline=None)
settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "default"))


@pytest.fixture()
def m():
    """Lazily import the main module for tests to avoid module-level import."""
    return importlib.import_module("main")


def int_range(width: int, signed: bool):
    """Return the inclusive ``(min, max)`` of a fixed-width integer."""
    if signed:
        return -(1 << (width - 1)), (1 << (width - 1)) - 1
    return 0, (1 << width) - 1


def wrap(value: int, width: int, signed: bool) -> int:
    """Wrap ``value`` into the range of a fixed-width integer."""
    value &= (1 << width) - 1
    if signed and value >= 1 << (width - 1):
        value -= 1 << width
    return value


def sample_values(width: int, signed: bool):
    """256 evenly spaced values, the maximum, and scrambled multiples.

    Shared by every width/signedness so all variants see identical cases.
    """
    lo, hi = int_range(width, signed)
    increment = 1 << (width - 8)
    values = [lo + i * increment for i in range(256)]
    values.append(hi)
    values.extend(
        wrap(i * 0x12345789ABCDEF, width, signed) for i in range(-500, 500)
    )
    return values


@pytest.fixture()
def sample_values_fn():
    """Provide the sample_values helper without importing conftest."""
    return sample_values


@pytest.fixture()
def int_range_fn():
    return int_range
