"""
Equipment energy metrics

Pure functions used by the detailed audit: annual energy, savings potential
against a baseline-efficiency table, and the building-level rollup.

Two load-factor bands exist for the same Low/Medium/High scale. The detailed
audit rollup uses DETAILED_AUDIT_LOAD_FACTORS; the per-equipment heuristic
uses EQUIPMENT_ANALYSIS_LOAD_FACTORS. The two are not interchangeable.
"""

import logging
from typing import Dict, Any, List, Optional, Mapping

from models.enums import LoadFactor

logger = logging.getLogger(__name__)

WEEKS_PER_YEAR = 52

DETAILED_AUDIT_LOAD_FACTORS: Dict[str, float] = {
    'Low': 0.33,
    'Medium': 0.66,
    'High': 1.0,
    'Low (0-33%)': 0.33,
    'Medium (34-66%)': 0.66,
    'High (67-100%)': 1.0,
}
DETAILED_AUDIT_LOAD_FACTOR_FALLBACK = 0.5

EQUIPMENT_ANALYSIS_LOAD_FACTORS: Dict[str, float] = {
    'Low': 0.3,
    'Medium': 0.6,
    'High': 0.9,
}

# category -> sub type -> baseline efficiency (fraction)
BASELINE_EFFICIENCY: Dict[str, Dict[str, float]] = {
    'HVAC': {
        'Chiller': 0.9,
        'Boiler': 0.85,
        'Heat Pump': 0.88,
        'default': 0.8,
    },
    'Lighting': {
        'LED': 0.95,
        'Fluorescent': 0.85,
        'default': 0.8,
    },
    'default': {
        'default': 0.75,
    },
}

# Percent thresholds per category
EFFICIENCY_THRESHOLDS: Dict[str, Dict[str, float]] = {
    'HVAC': {'excellent': 95, 'good': 85, 'fair': 75},
    'Lighting': {'excellent': 90, 'good': 80, 'fair': 70},
    'Motors & Drives': {'excellent': 93, 'good': 88, 'fair': 80},
    'Process Equipment': {'excellent': 92, 'good': 85, 'fair': 75},
    'default': {'excellent': 90, 'good': 80, 'fair': 70},
}

HIGH_LOAD_CATEGORIES = ('Process Equipment', 'HVAC', 'Medical Equipment')
MEDIUM_LOAD_CATEGORIES = ('Motors & Drives', 'Utility Systems', 'Lab Equipment')

RECOMMEND_UPGRADE = 'Consider upgrading to high-efficiency equipment'
RECOMMEND_REPLACEMENT = 'Equipment approaching end of life - plan for replacement'
RECOMMEND_CONTROLS = 'Install automated controls to optimize operation'


def _band_key(load_factor: Optional[str]) -> str:
    """'Medium (34-66%)' -> 'Medium'"""
    return (load_factor or '').split('(')[0].strip()


def load_factor_multiplier(load_factor: Optional[str],
                           band: Mapping[str, float] = DETAILED_AUDIT_LOAD_FACTORS,
                           fallback: float = DETAILED_AUDIT_LOAD_FACTOR_FALLBACK) -> float:
    if load_factor in band:
        return band[load_factor]
    return band.get(_band_key(load_factor), fallback)


def annual_energy(rated_power: float, load_factor: Optional[str], operating_hours: float,
                  operating_days: float, band: Mapping[str, float] = DETAILED_AUDIT_LOAD_FACTORS,
                  fallback: float = DETAILED_AUDIT_LOAD_FACTOR_FALLBACK) -> float:
    """kWh/year = kW x load multiplier x hours/day x days/week x 52"""
    multiplier = load_factor_multiplier(load_factor, band, fallback)
    return rated_power * multiplier * operating_hours * operating_days * WEEKS_PER_YEAR


def efficiency_fraction(efficiency: float) -> float:
    """Efficiencies above 1 are percentages"""
    if efficiency is None:
        return 0.0
    return efficiency / 100.0 if efficiency > 1 else efficiency


def baseline_efficiency(category: Optional[str], sub_type: Optional[str]) -> float:
    standards = BASELINE_EFFICIENCY.get(category or '')
    if standards:
        if sub_type in standards:
            return standards[sub_type]
        return standards['default']
    return BASELINE_EFFICIENCY['default']['default']


def efficiency_gap(category: Optional[str], sub_type: Optional[str], efficiency: float) -> float:
    return max(0.0, baseline_efficiency(category, sub_type) - efficiency_fraction(efficiency))


def savings_potential(annual_kwh: float, category: Optional[str], sub_type: Optional[str],
                      efficiency: float) -> float:
    """Energy recoverable by reaching the baseline; 0 at or above baseline"""
    baseline = baseline_efficiency(category, sub_type)
    eff = efficiency_fraction(efficiency)
    if not baseline or eff >= baseline:
        return 0.0
    return max(0.0, annual_kwh * (1 - eff / baseline))


def equipment_recommendations(equipment: Mapping[str, Any]) -> List[str]:
    recommendations = []
    gap = efficiency_gap(equipment.get('category'), equipment.get('sub_type'),
                         equipment.get('efficiency') or 0.0)
    if gap > 0.1:
        recommendations.append(RECOMMEND_UPGRADE)
    if (equipment.get('age') or 0) > 15:
        recommendations.append(RECOMMEND_REPLACEMENT)
    control = equipment.get('control_system')
    if not control or control == 'None':
        recommendations.append(RECOMMEND_CONTROLS)
    return recommendations


def enrich_equipment(equipment: Mapping[str, Any]) -> Dict[str, Any]:
    """Attach energy, savings and efficiency figures plus recommendations"""
    annual = annual_energy(
        equipment.get('rated_power') or 0.0,
        equipment.get('load_factor'),
        equipment.get('operating_hours') or 0.0,
        equipment.get('operating_days') or 0.0,
    )
    enriched = dict(equipment)
    enriched.update({
        'annualEnergy': round(annual, 2),
        'savingsPotential': round(savings_potential(
            annual, equipment.get('category'), equipment.get('sub_type'),
            equipment.get('efficiency') or 0.0), 2),
        'efficiencyGap': round(efficiency_gap(
            equipment.get('category'), equipment.get('sub_type'),
            equipment.get('efficiency') or 0.0), 4),
        'efficiencyRating': efficiency_rating(equipment.get('category'), equipment.get('efficiency') or 0.0),
        'heuristicSavings': round(heuristic_savings_potential(equipment), 2),
        'recommendations': equipment_recommendations(equipment),
    })
    return enriched


def building_metrics(enriched: List[Mapping[str, Any]]) -> Dict[str, Any]:
    """Roll enriched equipment up to building level"""
    by_category: Dict[str, int] = {}
    for eq in enriched:
        category = eq.get('category') or 'Uncategorized'
        by_category[category] = by_category.get(category, 0) + 1

    count = len(enriched)
    return {
        'totalAnnualEnergy': round(sum(eq.get('annualEnergy', 0.0) for eq in enriched), 2),
        'totalSavingsPotential': round(sum(eq.get('savingsPotential', 0.0) for eq in enriched), 2),
        'averageEquipmentAge': round(sum((eq.get('age') or 0) for eq in enriched) / count, 2) if count else 0.0,
        'equipmentByCategory': by_category,
    }


def efficiency_thresholds(category: Optional[str]) -> Dict[str, float]:
    return EFFICIENCY_THRESHOLDS.get(category or '', EFFICIENCY_THRESHOLDS['default'])


def efficiency_rating(category: Optional[str], efficiency: float) -> str:
    """Excellent/Good/Fair/Poor against the category thresholds (percent)"""
    percent = efficiency * 100 if efficiency <= 1 else efficiency
    thresholds = efficiency_thresholds(category)
    if percent >= thresholds['excellent']:
        return 'Excellent'
    if percent >= thresholds['good']:
        return 'Good'
    if percent >= thresholds['fair']:
        return 'Fair'
    return 'Poor'


def default_load_factor(category: Optional[str]) -> LoadFactor:
    if category in HIGH_LOAD_CATEGORIES:
        return LoadFactor.High
    if category in MEDIUM_LOAD_CATEGORIES:
        return LoadFactor.Medium
    return LoadFactor.Low


def heuristic_savings_potential(equipment: Mapping[str, Any]) -> float:
    """
    Rule-of-thumb savings for one piece of equipment (kWh/year).

    Shares add up from age, condition, controls, efficiency and metering,
    then apply to annual energy on the equipment-analysis band.
    """
    share = 0.0

    age = equipment.get('age') or 0
    if age > 15:
        share += 0.25
    elif age > 10:
        share += 0.15
    elif age > 5:
        share += 0.08

    if equipment.get('condition') in ('Needs Maintenance', 'Poor', 'Critical'):
        share += 0.15

    control = equipment.get('control_system')
    if control == 'Manual':
        share += 0.12
    elif control in ('Thermostat', 'Programmable Thermostat'):
        share += 0.05

    efficiency = equipment.get('efficiency') or 0.0
    percent = efficiency * 100 if efficiency <= 1 else efficiency
    thresholds = efficiency_thresholds(equipment.get('category'))
    if percent < thresholds['fair']:
        share += 0.20
    elif percent < thresholds['good']:
        share += 0.10

    if not equipment.get('energy_metered'):
        share += 0.05

    annual = annual_energy(
        equipment.get('rated_power') or 0.0,
        equipment.get('load_factor'),
        equipment.get('operating_hours') or 0.0,
        equipment.get('operating_days') or 0.0,
        band=EQUIPMENT_ANALYSIS_LOAD_FACTORS,
        fallback=EQUIPMENT_ANALYSIS_LOAD_FACTORS['Medium'],
    )
    return share * annual
