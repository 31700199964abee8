"""Tests for unbonding completion tracking."""

from datetime import UTC, datetime, timedelta

from blockshot.helpers.rest_models import RestUnbondingDelegation, RestUnbondingEntry
from blockshot.models import UnbondingEntry
from blockshot.scheduling.unbonding import entries_from_delegations, next_completion


BASE = datetime(2024, 6, 1, tzinfo=UTC)


def entry(offset_seconds: int, validator: str = "cosmosvaloper1a") -> UnbondingEntry:
    return UnbondingEntry(
        validator=validator,
        balance="1000",
        completion_time=BASE + timedelta(seconds=offset_seconds),
    )


class TestNextCompletion:
    """Tests for next_completion."""

    def test_picks_earliest(self) -> None:
        """Test that the minimum completion time wins."""
        entries = [entry(100), entry(50), entry(200)]

        result = next_completion(entries)

        assert result is not None
        assert result.completion_time == BASE + timedelta(seconds=50)

    def test_empty_is_none(self) -> None:
        """Test that no entries means no target."""
        assert next_completion([]) is None

    def test_tie_keeps_first(self) -> None:
        """Test that equal times keep the first entry seen."""
        first = entry(10, validator="cosmosvaloper1first")
        second = entry(10, validator="cosmosvaloper1second")

        assert next_completion([first, second]) is first


class TestEntriesFromDelegations:
    """Tests for entries_from_delegations."""

    def test_normalizes_timestamp_variants(self) -> None:
        """Test that string and protobuf timestamps both parse."""
        delegations = [
            RestUnbondingDelegation(
                delegator_address="cosmos1d",
                validator_address="cosmosvaloper1a",
                entries=[
                    RestUnbondingEntry(
                        creation_height="77",
                        completion_time="2024-06-01T00:00:10.999999999Z",
                        balance="5",
                    ),
                    RestUnbondingEntry(
                        completion_time={"seconds": "1717200005", "nanos": 0},
                        balance="6",
                    ),
                ],
            )
        ]

        entries = entries_from_delegations(delegations)

        assert [e.balance for e in entries] == ["5", "6"]
        assert entries[0].creation_height == 77
        assert entries[1].creation_height is None
        assert next_completion(entries) is entries[1]

    def test_skips_unparseable_entries(self) -> None:
        """Test that malformed completion times are dropped."""
        delegations = [
            RestUnbondingDelegation(
                delegator_address="cosmos1d",
                validator_address="cosmosvaloper1a",
                entries=[
                    RestUnbondingEntry(completion_time=None, balance="1"),
                    RestUnbondingEntry(completion_time="not a time", balance="2"),
                    RestUnbondingEntry(completion_time="2024-06-01T00:00:00Z", balance="3"),
                ],
            )
        ]

        entries = entries_from_delegations(delegations)

        assert [e.balance for e in entries] == ["3"]

    def test_skips_malformed_balances(self) -> None:
        """Test that balances which are not integer amounts are dropped."""
        delegations = [
            RestUnbondingDelegation(
                delegator_address="cosmos1d",
                validator_address="cosmosvaloper1a",
                entries=[
                    RestUnbondingEntry(completion_time="2024-06-01T00:00:00Z", balance="1.5"),
                    RestUnbondingEntry(completion_time="2024-06-01T00:00:01Z", balance="lots"),
                    RestUnbondingEntry(
                        completion_time="2024-06-01T00:00:02Z",
                        balance="40.000000000000000000",
                    ),
                ],
            )
        ]

        entries = entries_from_delegations(delegations)

        assert [e.balance for e in entries] == ["40"]
