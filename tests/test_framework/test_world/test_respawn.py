import pytest

from tower.components.encounter import EncounterRecord, FloorState
from tower.config import RespawnConfig
from tower.world.respawn import RespawnLedger, EligibilityStatus

DEFEATED_AT = 100_000


@pytest.fixture
def ledger():
    return RespawnLedger({}, RespawnConfig(delay_ms=30000, limit=3))


def test_fresh_encounter(ledger):
    eligibility = ledger.check_eligibility(0, 5, DEFEATED_AT)
    assert eligibility.status == EligibilityStatus.FRESH
    assert eligibility.can_encounter


def test_cooling_then_eligible(ledger):
    ledger.record_defeat(0, 5, DEFEATED_AT)

    cooling = ledger.check_eligibility(0, 5, DEFEATED_AT + 29999)
    assert cooling.status == EligibilityStatus.COOLING
    assert cooling.remaining_ms == 1
    assert cooling.remaining_seconds == 1
    assert not cooling.can_encounter
    assert ledger.get_record(0, 5).respawn_count == 0

    eligible = ledger.check_eligibility(0, 5, DEFEATED_AT + 30001)
    assert eligible.status == EligibilityStatus.ELIGIBLE
    assert ledger.get_record(0, 5).respawn_count == 1


def test_exhausted_after_limit(ledger):
    ledger.record_defeat(0, 5, DEFEATED_AT)
    later = DEFEATED_AT + 10 * 30000

    for _ in range(3):
        assert ledger.check_eligibility(0, 5, later).status == EligibilityStatus.ELIGIBLE

    assert ledger.check_eligibility(0, 5, later).status == EligibilityStatus.EXHAUSTED
    assert ledger.check_eligibility(0, 5, later * 100).status == EligibilityStatus.EXHAUSTED
    assert ledger.get_record(0, 5).respawn_count == 3


def test_record_defeat_resets_count(ledger):
    ledger.record_defeat(0, 5, DEFEATED_AT)
    ledger.check_eligibility(0, 5, DEFEATED_AT + 40000)

    record = ledger.record_defeat(0, 5, DEFEATED_AT + 50000)

    assert record.respawn_count == 0
    assert record.defeated_at == DEFEATED_AT + 50000
    assert ledger.check_eligibility(0, 5, DEFEATED_AT + 60000).status == EligibilityStatus.COOLING


def test_zero_limit_is_exhausted_immediately():
    ledger = RespawnLedger({}, RespawnConfig(limit=0))
    ledger.record_defeat(0, 1, 0)
    assert ledger.check_eligibility(0, 1, 10**9).status == EligibilityStatus.EXHAUSTED


def test_records_are_per_floor(ledger):
    ledger.record_defeat(0, 5, DEFEATED_AT)
    assert ledger.check_eligibility(1, 5, DEFEATED_AT).status == EligibilityStatus.FRESH


def test_ledger_writes_into_floor_states():
    floors = {2: FloorState()}
    ledger = RespawnLedger(floors)

    ledger.record_defeat(2, 7, 123)
    ledger.record_defeat(3, "boss", 456)

    assert floors[2].defeated["7"].defeated_at == 123
    assert floors[3].defeated["boss"].respawn_limit == 3


def test_string_and_int_ids_share_a_record(ledger):
    ledger.record_defeat(0, 5, DEFEATED_AT)
    assert ledger.get_record(0, "5") is not None


def test_restored_record_keeps_schedule():
    floors = {0: FloorState.restore({
        "defeated": {"5": {"defeated_at": 0, "respawn_delay_ms": 1000, "respawn_limit": 1, "respawn_count": 0}},
    })}
    ledger = RespawnLedger(floors)

    assert ledger.check_eligibility(0, 5, 999).status == EligibilityStatus.COOLING
    assert ledger.check_eligibility(0, 5, 1000).status == EligibilityStatus.ELIGIBLE
    assert ledger.check_eligibility(0, 5, 5000).status == EligibilityStatus.EXHAUSTED
    assert isinstance(floors[0].defeated["5"], EncounterRecord)
