"""Shared fixtures: the reference rule snapshot used across the engine tests."""

import logging

import pytest

from care_pricing.enterprise_engine import snapshot_loader
from care_pricing.enterprise_engine.models import RuleSnapshot
from care_pricing.logging_config import LOGGER_NAME

HOUR_CURVE = {
    1: 0.2,
    2: 0.28,
    3: 0.36,
    4: 0.44,
    5: 0.52,
    6: 0.6,
    7: 0.67,
    8: 0.74,
    9: 0.8,
    10: 0.86,
    11: 0.93,
    12: 1.0,
}


def build_snapshot(**overrides) -> RuleSnapshot:
    data = {
        "unit_id": "unit-test",
        "unit_code": "TESTE",
        "unit_name": "Unidade Teste",
        "currency": "BRL",
        "version_id": "teste-v1",
        "version": 1,
        "fee_applied_before_discount": False,
        "base12h": {
            "caregiver": 180,
            "nursing_auxiliary": 240,
            "nursing_technician": 300,
            "nurse": 360,
        },
        "additive_percents": {
            "extra_patient": 50,
            "night": 20,
            "weekend": 20,
            "holiday": 20,
            "high_risk": 15,
            "at": 5,
            "aa": 5,
        },
        "percent_scaled_by_hours": {"at": True, "aa": True},
        "margin_percent": 30,
        "fixed_profit": 0,
        "tax_over_margin_percent": 6,
        "hour_rules": [{"hour": h, "factor": f} for h, f in HOUR_CURVE.items()],
        "payment_fee_rules": [
            {"method": "PIX", "period": "SEMANAL", "fee_percent": 0},
            {"method": "CARTAO_CREDITO", "period": "MENSAL", "fee_percent": 4},
        ],
        "minicost_rules": [
            {"code": "VISITA_SUPERVISAO", "label": "Visita de supervisao", "value": 35},
            {"code": "RESERVA_TECNICA", "label": "Reserva tecnica", "value": 22},
        ],
        "commission_rules": [
            {"code": "MARKETING", "percent": 3.5},
            {"code": "REINVESTIMENTO", "percent": 2},
        ],
        "condition_rules": [
            {
                "code": "ALZHEIMER",
                "label": "Alzheimer",
                "complexity": "MEDIA",
                "minimum_tier": "AUXILIAR_ENF",
                "surcharge_percent": 8,
            },
            {
                "code": "AVC_SEQUELA",
                "label": "AVC com sequela",
                "complexity": "ALTA",
                "minimum_tier": "TECNICO_ENF",
                "surcharge_percent": 12,
            },
        ],
        "discount_presets": [{"name": "MENSAL_5", "percent": 5}],
    }
    data.update(overrides)
    return RuleSnapshot.model_validate(data)


@pytest.fixture
def snapshot() -> RuleSnapshot:
    return build_snapshot()


@pytest.fixture
def make_snapshot():
    """Factory for snapshot variants: make_snapshot(margin_percent=40, ...)."""
    return build_snapshot


@pytest.fixture(autouse=True)
def _isolate_global_state():
    """Clear the snapshot cache and drop handlers installed by configure_logging."""
    snapshot_loader.clear_cache()
    yield
    snapshot_loader.clear_cache()
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
