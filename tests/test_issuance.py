from __future__ import annotations

import pytest

from rebasecore.ledger.accounts import balance_of, credits_of
from rebasecore.ledger.constants import MAX_SUPPLY, PRECISION
from rebasecore.ledger.state import new_ledger_state
from rebasecore.runtime.apply.issuance import NaiveBurnPolicy, StrictBurnPolicy, burn, mint
from rebasecore.runtime.apply.rebase_opt import opt_out
from rebasecore.runtime.apply.supply import change_supply
from rebasecore.runtime.errors import ErrorKind, LedgerError
from rebasecore.runtime.state_invariants import audit_state

HALF = PRECISION // 2


def test_mint_credits_rebasing_account() -> None:
    st = new_ledger_state()
    out = mint(st, "alice", 100)

    assert out["credits"] == 100
    assert out["balance"] == 100
    assert st.total_supply == 100
    assert st.rebasing_credits == 100
    assert st.non_rebasing_supply == 0


def test_mint_to_non_rebasing_account_grows_non_rebasing_supply() -> None:
    st = new_ledger_state()
    mint(st, "vault", 10)
    opt_out(st, "vault")
    mint(st, "vault", 15)

    assert balance_of(st, "vault") == 25
    assert st.non_rebasing_supply == 25
    assert st.rebasing_credits == 0
    assert st.total_supply == 25


def test_mint_zero_creates_the_account_only() -> None:
    st = new_ledger_state()
    out = mint(st, "alice", 0)
    assert out["balance"] == 0
    assert "alice" in st.accounts
    assert st.total_supply == 0


def test_mint_beyond_max_supply_overflows_without_change() -> None:
    st = new_ledger_state()
    mint(st, "alice", MAX_SUPPLY)
    before = st.to_json()

    with pytest.raises(LedgerError) as e:
        mint(st, "alice", 1)
    assert e.value.code == ErrorKind.ARITHMETIC_OVERFLOW
    assert e.value.reason == "max_supply_exceeded"
    assert st.to_json() == before


def test_mint_rejects_negative_amount() -> None:
    st = new_ledger_state()
    with pytest.raises(LedgerError) as e:
        mint(st, "alice", -5)
    assert e.value.code == ErrorKind.INVALID_AMOUNT


def test_burn_reduces_balance_and_supply() -> None:
    st = new_ledger_state()
    mint(st, "alice", 100)
    out = burn(st, "alice", 40)

    assert out["balance"] == 60
    assert out["policy"] == "strict"
    assert st.total_supply == 60
    assert st.rebasing_credits == 60


def test_burn_more_than_balance() -> None:
    st = new_ledger_state()
    mint(st, "alice", 100)
    with pytest.raises(LedgerError) as e:
        burn(st, "alice", 101)
    assert e.value.code == ErrorKind.INSUFFICIENT_BALANCE
    assert balance_of(st, "alice") == 100


def test_burn_from_unknown_account_does_not_create_it() -> None:
    st = new_ledger_state()
    with pytest.raises(LedgerError) as e:
        burn(st, "ghost", 1)
    assert e.value.code == ErrorKind.INSUFFICIENT_BALANCE
    assert "ghost" not in st.accounts


def test_burn_zero_is_a_no_op() -> None:
    st = new_ledger_state()
    mint(st, "alice", 7)
    before = st.to_json()
    out = burn(st, "alice", 0)
    assert out["amount"] == 0
    assert st.to_json() == before


def test_strict_policy_rejects_dust_burn() -> None:
    st = new_ledger_state(initial_credits_per_token=HALF)
    mint(st, "alice", 100)
    assert credits_of(st, "alice") == 50
    before = st.to_json()

    with pytest.raises(LedgerError) as e:
        burn(st, "alice", 1, policy=StrictBurnPolicy())
    assert e.value.code == ErrorKind.DUST_AMOUNT_BURN
    assert st.to_json() == before


def test_naive_policy_lets_supply_and_balance_diverge() -> None:
    st = new_ledger_state(initial_credits_per_token=HALF)
    mint(st, "alice", 100)

    out = burn(st, "alice", 1, policy=NaiveBurnPolicy())
    assert out["credits"] == 0
    assert out["policy"] == "naive"
    assert balance_of(st, "alice") == 100
    assert st.total_supply == 99
    assert audit_state(st)["supply_drift"] == -1


def _locked_vault():
    st = new_ledger_state(initial_credits_per_token=HALF)
    mint(st, "vault", 100)
    opt_out(st, "vault")
    return st


def test_strict_burn_from_non_rebasing_tracks_removed_balance() -> None:
    st = _locked_vault()
    out = burn(st, "vault", 3)

    # 3 tokens -> 1 credit at 0.5 credits/token, which is worth 2 tokens
    assert out["credits"] == 1
    assert balance_of(st, "vault") == 98
    assert st.non_rebasing_supply == 98
    assert st.total_supply == 97
    assert audit_state(st)["non_rebasing_supply_drift"] == 0


def test_naive_burn_from_non_rebasing_uses_nominal_amount() -> None:
    st = _locked_vault()
    burn(st, "vault", 3, policy=NaiveBurnPolicy())

    assert balance_of(st, "vault") == 98
    assert st.non_rebasing_supply == 97
    assert audit_state(st)["non_rebasing_supply_drift"] == -1


def test_burn_above_balance_after_rebase_is_rejected() -> None:
    st = new_ledger_state()
    mint(st, "A", 100)
    mint(st, "B", 100)
    change_supply(st, 400)
    assert st.rebasing_credits_per_token == HALF
    assert balance_of(st, "A") == 200
    before = st.to_json()

    # 201 tokens truncate to 100 credits, which A holds; the balance check must still fire
    for policy in (StrictBurnPolicy(), NaiveBurnPolicy()):
        with pytest.raises(LedgerError) as e:
            burn(st, "A", 201, policy=policy)
        assert e.value.code == ErrorKind.INSUFFICIENT_BALANCE
        assert st.to_json() == before

    burn(st, "A", 200)
    assert balance_of(st, "A") == 0
    assert st.total_supply == 200
    assert audit_state(st)["supply_drift"] == 0


def test_burn_above_balance_of_sole_holder_is_insufficient_balance() -> None:
    st = new_ledger_state()
    mint(st, "A", 100)
    change_supply(st, 200)
    before = st.to_json()

    with pytest.raises(LedgerError) as e:
        burn(st, "A", 201)
    assert e.value.code == ErrorKind.INSUFFICIENT_BALANCE
    assert e.value.reason == "burn_exceeds_balance"
    assert st.to_json() == before
