"""Tests for data contracts: sanitization, immutability and config wiring."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from alphagate.config import Settings
from alphagate.contracts import (
    AssetSnapshot,
    Explanation,
    ExecutionLogEntry,
    ExecutionType,
    PriceChange,
    ScoredAsset,
    SystemConfig,
    neutral_number,
    new_id,
    utc_now,
)


class TestNeutralNumber:
    @pytest.mark.parametrize("value", [None, float("nan"), float("inf"), "abc", True, object()])
    def test_unusable_values_become_zero(self, value):
        assert neutral_number(value) == 0.0

    def test_numeric_strings_and_ints(self):
        assert neutral_number("1.5") == 1.5
        assert neutral_number(3) == 3.0


class TestAssetSnapshot:
    def test_missing_fields_default_to_zero(self):
        snap = AssetSnapshot(asset_id="a", symbol="A", price_change=None)
        assert snap.liquidity == 0.0
        assert snap.price_change == PriceChange()

    def test_volatility_clamped(self):
        assert AssetSnapshot(asset_id="a", symbol="A", volatility_index=150).volatility_index == 100.0
        assert AssetSnapshot(asset_id="a", symbol="A", volatility_index=-3).volatility_index == 0.0

    def test_negative_spike_floored(self):
        assert AssetSnapshot(asset_id="a", symbol="A", volume_spike_factor=-1).volume_spike_factor == 0.0

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            AssetSnapshot(asset_id="a", symbol="A", liquidty=1.0)

    def test_frozen(self, make_snapshot):
        snap = make_snapshot()
        with pytest.raises(ValidationError):
            snap.price = 2.0

    def test_model_copy_leaves_original(self, make_snapshot):
        snap = make_snapshot()
        moved = snap.model_copy(update={"price": 2.0})
        assert snap.price == 1.0
        assert moved.price == 2.0


class TestDecisionContracts:
    def test_score_bounds(self, make_snapshot):
        with pytest.raises(ValidationError):
            ScoredAsset(snapshot=make_snapshot(), momentum_score=101)

    def test_explanation_list_limits(self):
        with pytest.raises(ValidationError):
            Explanation(summary="s", supporting_signals=("a", "b", "c", "d"), confidence_rationale="r")
        with pytest.raises(ValidationError):
            Explanation(summary="s", risk_factors=("a", "b", "c"), confidence_rationale="r")

    def test_classified_asset_views(self, make_classified):
        asset = make_classified(price=2.5, volatility_index=40)
        assert asset.asset_id == "asset-0"
        assert asset.price == 2.5
        assert asset.volatility_index == 40.0


class TestIdsAndTime:
    def test_new_id_prefix_and_uniqueness(self):
        ids = {new_id("exec") for _ in range(100)}
        assert len(ids) == 100
        assert all(i.startswith("exec-") for i in ids)

    def test_log_entry_generates_id(self):
        entry = ExecutionLogEntry(
            timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc),
            symbol="X", kind=ExecutionType.ENTRY, reason="r", risk_check_note="n",
        )
        assert entry.id.startswith("exec-")

    def test_utc_now_is_aware(self):
        assert utc_now().tzinfo is not None


class TestSystemConfig:
    def test_defaults(self):
        config = SystemConfig()
        assert config.scoring.min_liquidity == 50_000.0
        assert config.risk.max_open_positions == 3
        assert config.risk.volatility_kill_switch == 90.0

    def test_from_settings(self):
        settings = Settings(min_liquidity=75_000, cooldown_seconds=120, _env_file=None)
        config = SystemConfig.from_settings(settings)
        assert config.scoring.min_liquidity == 75_000.0
        assert config.risk.cooldown_seconds == 120.0
        assert config.scoring.volume_weight == settings.volume_weight

    def test_kill_switch_out_of_range(self):
        with pytest.raises(ValidationError):
            SystemConfig(risk={"volatility_kill_switch": 120})
