"""
Equipment catalog offered in the detailed audit step, per customer type
"""

from typing import Dict, List

from models.enums import EquipmentCondition, ControlSystem, MaintenanceFrequency, LoadFactor
from services.equipment_metrics import default_load_factor

# category -> [(sub type, typical capacity)]
EquipmentCatalog = Dict[str, List[Dict[str, str]]]


def _items(*pairs) -> List[Dict[str, str]]:
    return [{"type": sub_type, "defaultCapacity": capacity} for sub_type, capacity in pairs]


RESIDENTIAL_EQUIPMENT: EquipmentCatalog = {
    'HVAC': _items(
        ('Split AC', '12000-36000 BTU'),
        ('Window AC', '5000-24000 BTU'),
        ('Central AC', '24000-60000 BTU'),
        ('Heat Pump', '24000-48000 BTU'),
        ('Furnace', '40000-120000 BTU'),
    ),
    'Water Heating': _items(
        ('Tank Water Heater', '30-80 gallons'),
        ('Tankless Water Heater', '6-10 GPM'),
        ('Heat Pump Water Heater', '50-80 gallons'),
    ),
    'Appliances': _items(
        ('Refrigerator', '18-25 cu.ft.'),
        ('Washing Machine', '3.5-5.0 cu.ft.'),
        ('Dryer', '7.0-8.0 cu.ft.'),
        ('Dishwasher', '12-14 place settings'),
    ),
    'Lighting': _items(
        ('LED Bulbs', '9-15W'),
        ('LED Fixtures', '15-30W'),
        ('Smart Lighting', '9-15W'),
    ),
    'Pool Equipment': _items(
        ('Pool Pump', '1-2.5 HP'),
        ('Pool Heater', '100000-400000 BTU'),
    ),
}

COMMERCIAL_EQUIPMENT: EquipmentCatalog = {
    'HVAC': _items(
        ('Rooftop Unit (RTU)', '5-50 tons'),
        ('VAV System', '2000-8000 CFM'),
        ('Chiller', '20-500 tons'),
        ('Cooling Tower', '50-1000 tons'),
        ('Air Handling Unit (AHU)', '2000-50000 CFM'),
    ),
    'Lighting': _items(
        ('LED Panels', '30-50W'),
        ('High Bay LED', '100-240W'),
        ('Office Lighting', '30-40W'),
        ('Parking Lighting', '150-400W'),
    ),
    'Motors & Pumps': _items(
        ('Supply Fan', '1-50 HP'),
        ('Return Fan', '1-40 HP'),
        ('Chilled Water Pump', '2-100 HP'),
        ('Condenser Water Pump', '2-100 HP'),
    ),
    'Building Controls': _items(
        ('BMS Controller', 'N/A'),
        ('VAV Controller', 'N/A'),
        ('Smart Thermostat', 'N/A'),
    ),
}

INDUSTRIAL_EQUIPMENT: EquipmentCatalog = {
    'Process Equipment': _items(
        ('Process Chiller', '20-2000 tons'),
        ('Process Boiler', '500-5000 MBH'),
        ('Compressed Air System', '25-500 HP'),
        ('Industrial Furnace', '1-10 MMBTU'),
    ),
    'Motors & Drives': _items(
        ('Process Motor', '1-500 HP'),
        ('VFD', '1-1000 HP'),
        ('Conveyor System', '1-100 HP'),
        ('Industrial Fan', '5-500 HP'),
    ),
    'HVAC': _items(
        ('Make-up Air Unit', '5000-100000 CFM'),
        ('Exhaust System', '5000-100000 CFM'),
        ('Dust Collection', '5000-50000 CFM'),
    ),
    'Utility Systems': _items(
        ('Steam System', '1000-10000 lbs/hr'),
        ('Process Water System', '100-1000 GPM'),
        ('Cooling Tower', '100-2000 tons'),
    ),
}

HEALTHCARE_EQUIPMENT: EquipmentCatalog = {
    'HVAC': _items(
        ('Medical Air Handler', '5000-50000 CFM'),
        ('Operating Room HVAC', '2000-4000 CFM'),
        ('Isolation Room System', '500-1000 CFM'),
        ('Medical Chiller', '100-500 tons'),
    ),
    'Medical Equipment': _items(
        ('Medical Vacuum System', '10-50 HP'),
        ('Medical Air Compressor', '10-50 HP'),
        ('Sterilization Equipment', '20-50 kW'),
    ),
    'Backup Systems': _items(
        ('Emergency Generator', '100-2000 kW'),
        ('UPS System', '20-200 kVA'),
    ),
}

EDUCATIONAL_EQUIPMENT: EquipmentCatalog = {
    'HVAC': _items(
        ('Classroom Unit Ventilator', '750-2000 CFM'),
        ('Gymnasium AHU', '5000-20000 CFM'),
        ('Library HVAC', '2000-10000 CFM'),
        ('Cafeteria Kitchen Hood', '2000-6000 CFM'),
    ),
    'Lighting': _items(
        ('Classroom Lighting', '30-40W per fixture'),
        ('Gymnasium Lighting', '100-200W per fixture'),
        ('Exterior Lighting', '50-150W per fixture'),
    ),
    'Lab Equipment': _items(
        ('Fume Hood', '500-1000 CFM'),
        ('Lab Air System', '2000-5000 CFM'),
    ),
}

CATALOGS: Dict[str, EquipmentCatalog] = {
    'residential': RESIDENTIAL_EQUIPMENT,
    'commercial': COMMERCIAL_EQUIPMENT,
    'industrial': INDUSTRIAL_EQUIPMENT,
    'healthcare': HEALTHCARE_EQUIPMENT,
    'educational': EDUCATIONAL_EQUIPMENT,
}

EQUIPMENT_CONDITIONS = [c.value for c in EquipmentCondition]
CONTROL_SYSTEMS = [c.value for c in ControlSystem]
MAINTENANCE_FREQUENCIES = [m.value for m in MaintenanceFrequency]
LOAD_FACTOR_LABELS = ['Low (0-33%)', 'Medium (34-66%)', 'High (67-100%)']
LOAD_FACTOR_LABEL_BY_BAND = dict(zip((LoadFactor.Low, LoadFactor.Medium, LoadFactor.High), LOAD_FACTOR_LABELS))


def get_equipment_types(customer_type: str) -> EquipmentCatalog:
    """Catalog for a customer type; unknown types fall back to residential"""
    return CATALOGS.get((customer_type or '').lower(), RESIDENTIAL_EQUIPMENT)


def get_form_options(customer_type: str) -> Dict[str, object]:
    """Everything the equipment form needs in one payload"""
    categories = get_equipment_types(customer_type)
    return {
        'customerType': (customer_type or 'residential').lower(),
        'categories': categories,
        'defaultLoadFactors': {
            category: LOAD_FACTOR_LABEL_BY_BAND[default_load_factor(category)] for category in categories
        },
        'conditions': EQUIPMENT_CONDITIONS,
        'controlSystems': CONTROL_SYSTEMS,
        'loadFactors': LOAD_FACTOR_LABELS,
        'maintenanceFrequencies': MAINTENANCE_FREQUENCIES,
    }
