"""
Tests for equipment energy metrics and the equipment catalog
"""

import pytest

from models.enums import LoadFactor
from services.equipment_metrics import (
    annual_energy,
    load_factor_multiplier,
    efficiency_fraction,
    savings_potential,
    equipment_recommendations,
    enrich_equipment,
    building_metrics,
    efficiency_rating,
    default_load_factor,
    heuristic_savings_potential,
    EQUIPMENT_ANALYSIS_LOAD_FACTORS,
    RECOMMEND_UPGRADE,
    RECOMMEND_REPLACEMENT,
    RECOMMEND_CONTROLS,
)
from services.equipment_catalog import get_equipment_types, get_form_options, RESIDENTIAL_EQUIPMENT


class TestAnnualEnergy:

    def test_medium_load(self):
        # 5 kW x 0.66 x 8 h x 5 d x 52 w
        assert annual_energy(5, "Medium", 8, 5) == pytest.approx(6864.0)

    def test_band_labels(self):
        assert load_factor_multiplier("High (67-100%)") == 1.0
        assert load_factor_multiplier("Low (0-33%)") == 0.33

    def test_unknown_load_factor_uses_fallback(self):
        assert load_factor_multiplier("Sometimes") == 0.5

    def test_equipment_analysis_band_is_separate(self):
        assert load_factor_multiplier("Medium", EQUIPMENT_ANALYSIS_LOAD_FACTORS, 0.6) == 0.6
        assert load_factor_multiplier("Medium") == 0.66


class TestSavings:

    def test_percentage_efficiency_is_normalized(self):
        assert efficiency_fraction(85) == pytest.approx(0.85)
        assert efficiency_fraction(0.85) == pytest.approx(0.85)

    def test_savings_against_baseline(self):
        # Chiller baseline 0.9, running at 0.6
        assert savings_potential(9000, "HVAC", "Chiller", 0.6) == pytest.approx(3000.0)

    def test_percentage_input_gives_same_savings(self):
        assert savings_potential(9000, "HVAC", "Chiller", 60) == pytest.approx(3000.0)

    def test_never_negative(self):
        assert savings_potential(9000, "Lighting", "LED", 0.99) == 0.0
        assert savings_potential(9000, "Lighting", "LED", 99) == 0.0


class TestRecommendations:

    def test_old_inefficient_uncontrolled(self):
        recs = equipment_recommendations({
            "category": "HVAC", "sub_type": "Boiler", "efficiency": 0.6, "age": 20, "control_system": "None",
        })
        assert recs == [RECOMMEND_UPGRADE, RECOMMEND_REPLACEMENT, RECOMMEND_CONTROLS]

    def test_good_equipment_has_none(self):
        recs = equipment_recommendations({
            "category": "Lighting", "sub_type": "LED", "efficiency": 0.95, "age": 2,
            "control_system": "Smart Controls",
        })
        assert recs == []


class TestRollup:

    def test_enrich_and_rollup(self):
        equipment = [
            {"category": "HVAC", "sub_type": "Chiller", "rated_power": 5, "load_factor": "Medium",
             "operating_hours": 8, "operating_days": 5, "efficiency": 0.9, "age": 4,
             "control_system": "BMS Integration"},
            {"category": "Lighting", "sub_type": "Fluorescent", "rated_power": 2, "load_factor": "High",
             "operating_hours": 10, "operating_days": 5, "efficiency": 0.7, "age": 12,
             "control_system": "Manual"},
        ]

        enriched = [enrich_equipment(eq) for eq in equipment]
        metrics = building_metrics(enriched)

        assert enriched[0]["annualEnergy"] == pytest.approx(6864.0)
        assert enriched[0]["savingsPotential"] == 0.0
        assert enriched[1]["annualEnergy"] == pytest.approx(5200.0)
        assert metrics["totalAnnualEnergy"] == pytest.approx(12064.0)
        assert metrics["averageEquipmentAge"] == pytest.approx(8.0)
        assert metrics["equipmentByCategory"] == {"HVAC": 1, "Lighting": 1}
        assert enriched[0]["efficiencyRating"] == "Good"
        assert enriched[1]["efficiencyRating"] == "Fair"
        # equipment-analysis band: 0.6 and 0.9 multipliers
        assert enriched[0]["heuristicSavings"] == pytest.approx(6240.0 * 0.05)
        assert enriched[1]["heuristicSavings"] == pytest.approx(4680.0 * 0.42)

    def test_empty_rollup(self):
        metrics = building_metrics([])
        assert metrics["totalAnnualEnergy"] == 0
        assert metrics["averageEquipmentAge"] == 0


class TestHeuristics:

    def test_efficiency_rating(self):
        assert efficiency_rating("HVAC", 0.96) == "Excellent"
        assert efficiency_rating("HVAC", 80) == "Fair"
        assert efficiency_rating("Lighting", 0.5) == "Poor"

    def test_default_load_factor(self):
        assert default_load_factor("HVAC") == LoadFactor.High
        assert default_load_factor("Motors & Drives") == LoadFactor.Medium
        assert default_load_factor("Appliances") == LoadFactor.Low

    def test_heuristic_savings_is_positive_for_old_manual_equipment(self):
        savings = heuristic_savings_potential({
            "category": "HVAC", "rated_power": 10, "load_factor": "Medium", "operating_hours": 8,
            "operating_days": 5, "efficiency": 0.6, "age": 18, "condition": "Poor", "control_system": "Manual",
        })
        assert savings > 0


class TestCatalog:

    def test_unknown_customer_type_falls_back_to_residential(self):
        assert get_equipment_types("spaceport") == RESIDENTIAL_EQUIPMENT

    def test_form_options(self):
        options = get_form_options("commercial")
        assert options["categories"]
        assert "Semi-Annual" in options["maintenanceFrequencies"]

    def test_form_options_suggest_a_load_factor_per_category(self):
        options = get_form_options("commercial")
        defaults = options["defaultLoadFactors"]

        assert set(defaults) == set(options["categories"])
        assert defaults["HVAC"] == "High (67-100%)"
        assert defaults["Lighting"] == "Low (0-33%)"
        assert all(label in options["loadFactors"] for label in defaults.values())
