"""
Analysis Normalizer - reconciles LLM recommendation payloads into one canonical shape

The LLM may return ``savings`` as a bare USD number or as a nested
``{cost, energy, carbon}`` object, and uses varying key names across prompts.
Everything downstream reads only the canonical fields produced here.
"""

import logging
import math
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

CANONICAL_PRIORITIES = ("High", "Medium", "Low")
DEFAULT_PRIORITY = "Medium"

REQUIRED_SECTIONS = ("findings", "recommendations", "keyMetrics", "executiveSummary")


def to_number(value: Any, default: float = 0.0) -> float:
    """Coerce ints, floats and numeric strings; anything else gives default"""
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else default
    if isinstance(value, str):
        cleaned = value.strip().replace(',', '').replace('$', '').rstrip('%').strip()
        try:
            number = float(cleaned)
        except ValueError:
            return default
        return number if math.isfinite(number) else default
    return default


def normalize_priority(value: Any) -> str:
    if isinstance(value, str):
        lowered = value.strip().lower()
        for priority in CANONICAL_PRIORITIES:
            if lowered == priority.lower():
                return priority
    return DEFAULT_PRIORITY


def normalize_recommendation(rec: Any) -> Dict[str, Any]:
    """
    Produce a canonical recommendation.

    Unknown keys are preserved; savings_usd, savings_kwh, savings_tCO2, cost,
    roi are always numbers and priority is one of High/Medium/Low.
    """
    if not isinstance(rec, dict):
        rec = {}

    savings = rec.get('savings')
    if isinstance(savings, dict):
        savings_usd = to_number(savings.get('cost'))
        savings_kwh = to_number(savings.get('energy'))
        savings_tco2 = to_number(savings.get('carbon'))
    elif 'savings' in rec:
        savings_usd = to_number(savings)
        savings_kwh = 0.0
        savings_tco2 = 0.0
    else:
        # Flat variants: initial-report prompt or an already normalized record
        savings_usd = to_number(rec.get('savings_usd', rec.get('potentialSavings')))
        savings_kwh = to_number(rec.get('savings_kwh'))
        savings_tco2 = to_number(rec.get('savings_tCO2'))

    normalized = dict(rec)
    normalized.update({
        'title': rec.get('title') if isinstance(rec.get('title'), str) else '',
        'description': rec.get('description') if isinstance(rec.get('description'), str) else '',
        'savings_usd': savings_usd,
        'savings_kwh': savings_kwh,
        'savings_tCO2': savings_tco2,
        'cost': to_number(rec.get('cost', rec.get('investment'))),
        'roi': to_number(rec.get('roi')),
        'priority': normalize_priority(rec.get('priority')),
    })
    return normalized


def normalize_recommendations(recs: Any) -> List[Dict[str, Any]]:
    if not isinstance(recs, list):
        if recs is not None:
            logger.warning(f"Recommendations were {type(recs).__name__}, expected list; dropping")
        return []
    return [normalize_recommendation(rec) for rec in recs]


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def normalize_analysis(payload: Any) -> Dict[str, Any]:
    """
    Normalize a full analysis payload. Total: never raises.

    Returns a new dict; the input is not modified.
    """
    if not isinstance(payload, dict):
        payload = {}

    normalized = dict(payload)
    normalized['recommendations'] = normalize_recommendations(payload.get('recommendations'))
    for section in ('findings', 'keyMetrics', 'executiveSummary'):
        normalized[section] = _as_dict(payload.get(section))
    return normalized


def total_savings(recommendations: List[Dict[str, Any]]) -> Dict[str, float]:
    """Sum canonical savings over normalized recommendations"""
    return {
        'savings_usd': round(sum(r.get('savings_usd', 0.0) for r in recommendations), 2),
        'savings_kwh': round(sum(r.get('savings_kwh', 0.0) for r in recommendations), 2),
        'savings_tCO2': round(sum(r.get('savings_tCO2', 0.0) for r in recommendations), 4),
    }


LEVEL_THREE_NUMERIC_SECTIONS = {
    'executive_summary': ('annual_savings', 'roi_percentage', 'payback_months', 'co2_reduction'),
    'energy_performance': ('annual_consumption', 'peak_demand', 'carbon_footprint', 'energy_cost'),
}


def normalize_level_three(payload: Any) -> Dict[str, Any]:
    """Normalize a level III analysis: numeric summary blocks plus canonical recommendations"""
    if not isinstance(payload, dict):
        payload = {}

    normalized = dict(payload)
    for section, fields in LEVEL_THREE_NUMERIC_SECTIONS.items():
        block = dict(_as_dict(payload.get(section)))
        for name in fields:
            block[name] = to_number(block.get(name))
        normalized[section] = block
    normalized['recommendations'] = normalize_recommendations(payload.get('recommendations'))
    return normalized
