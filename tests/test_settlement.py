import random
from decimal import Decimal

import pytest

from tripsettle import Balance, InvalidBalanceError, Transfer, compute_settlement, residuals, settle
from tripsettle.services.settlement import to_cents


def _balances(**nets: str) -> list[Balance]:
    return [Balance(participant_id=pid, net=Decimal(net)) for pid, net in nets.items()]


def _payers(transfers: list[Transfer], creditor: str) -> set[str]:
    return {t.from_id for t in transfers if t.to_id == creditor}


def test_settle_balances():
    balances = {
        "ann": 500,
        "bob": -300,
        "cat": -200,
    }

    transfers = settle(balances)

    assert transfers == [
        Transfer(from_id="bob", to_id="ann", amount_cents=300),
        Transfer(from_id="cat", to_id="ann", amount_cents=200),
    ]

    after = balances.copy()
    for t in transfers:
        after[t.to_id] -= t.amount_cents
        after[t.from_id] += t.amount_cents

    assert all(value == 0 for value in after.values())


def test_empty_and_zero_balances():
    assert compute_settlement([]) == []
    assert compute_settlement(_balances(a="0", b="0.00", c="-0")) == []


def test_two_party():
    transfers = compute_settlement(_balances(a="50", b="-50"))

    assert transfers == [Transfer(from_id="b", to_id="a", amount_cents=5000)]
    assert transfers[0].amount == Decimal("50.00")


def test_three_party_chain():
    transfers = compute_settlement(_balances(a="30", b="20", c="-50"))

    assert transfers == [
        Transfer(from_id="c", to_id="a", amount_cents=3000),
        Transfer(from_id="c", to_id="b", amount_cents=2000),
    ]
    assert sum(t.amount for t in transfers) == Decimal("50.00")


def test_consolidation_leaves_creditor_with_one_payer():
    balances = _balances(x="20", z="15", q="-15", p="-15", s="-5")

    greedy = compute_settlement(balances, consolidate=False)
    assert greedy == [
        Transfer(from_id="q", to_id="x", amount_cents=1500),
        Transfer(from_id="p", to_id="x", amount_cents=500),
        Transfer(from_id="p", to_id="z", amount_cents=1000),
        Transfer(from_id="s", to_id="z", amount_cents=500),
    ]
    assert _payers(greedy, "z") == {"p", "s"}

    consolidated = compute_settlement(balances)
    assert sorted(consolidated, key=lambda t: (t.from_id, t.to_id)) == [
        Transfer(from_id="p", to_id="z", amount_cents=1500),
        Transfer(from_id="q", to_id="x", amount_cents=1500),
        Transfer(from_id="s", to_id="x", amount_cents=500),
    ]
    assert _payers(consolidated, "z") == {"p"}
    assert all(v == 0 for v in residuals(balances, consolidated).values())


def test_consolidation_keeps_greedy_result_without_reroute():
    balances = _balances(a="-10", b="-10", x="20", y="-5", z="5")

    consolidated = compute_settlement(balances)

    assert consolidated == compute_settlement(balances, consolidate=False)
    assert _payers(consolidated, "x") == {"a", "b"}


def test_consolidation_stops_on_sideways_swaps():
    # rerouting here only trades one edge for another and would never settle down
    balances = _balances(x="10", z="10", a="-15", b="-5")

    transfers = compute_settlement(balances)

    assert transfers == [
        Transfer(from_id="a", to_id="x", amount_cents=1000),
        Transfer(from_id="a", to_id="z", amount_cents=500),
        Transfer(from_id="b", to_id="z", amount_cents=500),
    ]


def test_rounding_to_cents():
    balances = _balances(a="33.33", b="33.33", c="-66.66")

    transfers = compute_settlement(balances)

    assert sum(t.amount_cents for t in transfers) == 6666
    assert sum(t.amount for t in transfers) == Decimal("66.66")
    assert all(abs(v) <= Decimal("0.01") for v in residuals(balances, transfers).values())


@pytest.mark.parametrize(
    "value,expected",
    [
        (Decimal("12.345"), 1235),
        (-12.345, -1235),
        ("0.005", 1),
        ("-0.004", 0),
        (0.1 + 0.2, 30),
        (7, 700),
        (Decimal("1e30"), 10**32),
    ],
)
def test_to_cents(value, expected):
    assert to_cents(value) == expected


@pytest.mark.parametrize("value", [float("nan"), float("inf"), "-Infinity", "abc", None, True, Decimal("1e999999")])
def test_invalid_balance_raises(value):
    with pytest.raises(InvalidBalanceError) as exc_info:
        compute_settlement([Balance(participant_id="a", net=value), Balance(participant_id="b", net=Decimal("1"))])

    assert exc_info.value.participant_id == "a"
    assert isinstance(exc_info.value, ValueError)


def test_unbalanced_more_credit_than_debt():
    balances = _balances(a="100", b="-60")

    transfers = compute_settlement(balances)

    assert transfers == [Transfer(from_id="b", to_id="a", amount_cents=6000)]
    assert residuals(balances, transfers) == {"a": Decimal("40.00"), "b": Decimal("0.00")}


def test_unbalanced_more_debt_than_credit():
    balances = _balances(a="30", b="-50", c="-20")

    transfers = compute_settlement(balances)

    assert transfers == [Transfer(from_id="b", to_id="a", amount_cents=3000)]
    assert residuals(balances, transfers) == {
        "a": Decimal("0.00"),
        "b": Decimal("-20.00"),
        "c": Decimal("-20.00"),
    }


def test_repeated_participant_is_summed():
    transfers = compute_settlement(
        [
            Balance(participant_id="a", net=Decimal("10")),
            Balance(participant_id="b", net=Decimal("-25")),
            Balance(participant_id="a", net=Decimal("15")),
        ]
    )

    assert transfers == [Transfer(from_id="b", to_id="a", amount_cents=2500)]


@pytest.mark.parametrize("consolidate", [True, False])
def test_random_balances_hold_invariants(consolidate):
    rng = random.Random(20240611)

    for _ in range(300):
        size = rng.randint(2, 9)
        ids = [f"p{n}" for n in range(size)]
        cents = [rng.randint(-5000, 5000) for _ in ids[:-1]]
        cents.append(-sum(cents))
        balances = dict(zip(ids, cents))

        transfers = settle(balances, consolidate=consolidate)

        pairs = [(t.from_id, t.to_id) for t in transfers]
        assert len(pairs) == len(set(pairs))
        assert all(t.from_id != t.to_id for t in transfers)
        assert all(t.amount_cents > 0 for t in transfers)
        assert not {t.from_id for t in transfers} & {t.to_id for t in transfers}

        creditors = sum(1 for v in cents if v > 0)
        debtors = sum(1 for v in cents if v < 0)
        if creditors and debtors:
            assert len(transfers) <= creditors + debtors - 1

        left = balances.copy()
        for t in transfers:
            left[t.to_id] -= t.amount_cents
            left[t.from_id] += t.amount_cents
        assert all(value == 0 for value in left.values())

        assert settle(balances, consolidate=consolidate) == transfers


def test_consolidation_never_adds_transfers():
    rng = random.Random(99)

    for _ in range(200):
        ids = [f"p{n}" for n in range(rng.randint(3, 10))]
        cents = [rng.randint(-3000, 3000) for _ in ids[:-1]]
        cents.append(-sum(cents))
        balances = dict(zip(ids, cents))

        assert len(settle(balances)) <= len(settle(balances, consolidate=False))


def test_amounts_beyond_default_decimal_precision():
    balances = [Balance(participant_id="a", net=Decimal("1e30")), Balance(participant_id="b", net=Decimal("-1e30"))]

    transfers = compute_settlement(balances)

    assert transfers == [Transfer(from_id="b", to_id="a", amount_cents=10**32)]
    assert transfers[0].amount == Decimal("1e30")
    assert all(v == 0 for v in residuals(balances, transfers).values())


@pytest.mark.parametrize("consolidate", [True, False])
def test_random_unbalanced_balances_settle_smaller_side(consolidate):
    rng = random.Random(31337)

    for _ in range(300):
        ids = [f"p{n}" for n in range(rng.randint(2, 9))]
        balances = {pid: rng.randint(-5000, 5000) for pid in ids}
        credit = sum(v for v in balances.values() if v > 0)
        debit = -sum(v for v in balances.values() if v < 0)

        transfers = settle(balances, consolidate=consolidate)

        assert sum(t.amount_cents for t in transfers) == min(credit, debit)

        received = {pid: 0 for pid in ids}
        paid = {pid: 0 for pid in ids}
        for t in transfers:
            received[t.to_id] += t.amount_cents
            paid[t.from_id] += t.amount_cents

        for pid, net in balances.items():
            assert received[pid] <= max(net, 0)
            assert paid[pid] <= max(-net, 0)
            if credit <= debit and net > 0:
                assert received[pid] == net
            if debit <= credit and net < 0:
                assert paid[pid] == -net
