"""Test helpers module for shared test utilities.

- constants: Account names and common amounts
- factories: Pool and ledger factory functions
"""

from tests.helpers.constants import ALICE, BOB, CAROL, FUNDING, ONE, TOKEN_A, TOKEN_B
from tests.helpers.factories import fund, make_ledgers, make_pool

__all__ = [
    # Constants
    "ALICE",
    "BOB",
    "CAROL",
    "TOKEN_A",
    "TOKEN_B",
    "ONE",
    "FUNDING",
    # Factories
    "make_pool",
    "make_ledgers",
    "fund",
]
