"""Default training modules and facilities loaded by ``flask seed-catalog``."""
from __future__ import annotations

from flask import current_app

from extensions import db
from models import TrainingModule, WasteFacility

DEFAULT_TRAINING_MODULES: list[dict] = [
    {
        "title": "Source Segregation Basics",
        "description": "Separate dry, wet and hazardous waste at home.",
        "content": "Use three bins. Wet waste goes to composting, dry waste to recycling and hazardous waste to authorised collection.",
        "duration_minutes": 15,
        "is_mandatory": True,
        "target_role": "citizen",
    },
    {
        "title": "Home Composting",
        "description": "Turn kitchen waste into compost.",
        "content": "Layer wet waste with dry leaves, keep the pile moist and turn it weekly.",
        "duration_minutes": 20,
        "is_mandatory": False,
        "target_role": "citizen",
    },
    {
        "title": "Safe Handling for Collection Crews",
        "description": "Protective equipment and hazardous waste handling.",
        "content": "Wear gloves, masks and boots. Never mix medical waste with municipal waste.",
        "duration_minutes": 30,
        "is_mandatory": True,
        "target_role": "waste_worker",
    },
    {
        "title": "Leading a Ward Clean-up",
        "description": "Organise residents and track reported dumping sites.",
        "content": "Map reported sites, schedule drives with the ward office and log outcomes.",
        "duration_minutes": 25,
        "is_mandatory": True,
        "target_role": "green_champion",
    },
]

DEFAULT_FACILITIES: list[dict] = [
    {
        "name": "Green Valley Recycling Center",
        "type": "recycling",
        "address": "12 Ring Road, Sector 4",
        "city": "Indore",
        "latitude": 22.7196,
        "longitude": 75.8577,
        "capacity_tons": 40,
        "contact_person": "R. Sharma",
        "phone": "+91-731-4000100",
    },
    {
        "name": "City Biomethanization Plant",
        "type": "biomethanization",
        "address": "Plot 7, Industrial Area",
        "city": "Pune",
        "capacity_tons": 120,
        "contact_person": "S. Kulkarni",
        "phone": "+91-20-4000200",
    },
    {
        "name": "Okhla Waste-to-Energy Plant",
        "type": "waste_to_energy",
        "address": "Okhla Phase II",
        "city": "New Delhi",
        "latitude": 28.5355,
        "longitude": 77.2720,
        "capacity_tons": 1950,
    },
    {
        "name": "Ward 12 Scrap Collection Hub",
        "type": "scrap_collection",
        "address": "Market Lane, Ward 12",
        "city": "Bhopal",
        "phone": "+91-755-4000300",
    },
]


def seed_catalog() -> dict:
    """Load the default catalog into empty tables; existing rows are left untouched."""
    created = {"training_modules": 0, "waste_facilities": 0}
    if not TrainingModule.query.first():
        for payload in DEFAULT_TRAINING_MODULES:
            db.session.add(TrainingModule(**payload))
            created["training_modules"] += 1
    if not WasteFacility.query.first():
        for payload in DEFAULT_FACILITIES:
            db.session.add(WasteFacility(is_active=True, **payload))
            created["waste_facilities"] += 1
    db.session.commit()
    current_app.logger.info("catalog_seeded", extra=created)
    return created
