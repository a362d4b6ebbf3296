"""
Demo org directory for local development.

Used by ``flask seed-directory``. Idempotent: profiles that already exist
are left untouched.
"""

import logging

from training_workflow.models import db
from training_workflow.models.directory import Profile, UserRole

logger = logging.getLogger(__name__)

HQ = "entity-hq"
FIELD = "entity-field"

# (id, full_name, email, entity_id, manager_id, roles)
DEMO_PROFILES = [
    ("chro-1", "Chief HR Officer", "chro@example.org", HQ, None, ["chro", "admin"]),
    ("lnd-1", "L&D Lead", "lnd@example.org", HQ, "chro-1", ["l_and_d", "manager"]),
    ("hrbp-hq", "HR Business Partner (HQ)", "hrbp.hq@example.org", HQ, "chro-1", ["hrbp"]),
    ("hrbp-field", "HR Business Partner (Field)", "hrbp.field@example.org", FIELD, "chro-1", ["hrbp"]),
    ("mgr-eng", "Engineering Manager", "mgr.eng@example.org", FIELD, "lnd-1", ["manager"]),
    ("emp-1", "Field Engineer", "emp1@example.org", FIELD, "mgr-eng", ["employee"]),
    ("emp-2", "Field Technician", "emp2@example.org", FIELD, "mgr-eng", ["employee"]),
]


def seed_demo_directory():
    """Insert the demo profiles and role assignments. Returns number created."""
    created = 0
    for pid, name, email, entity_id, manager_id, roles in DEMO_PROFILES:
        if db.session.get(Profile, pid):
            continue
        profile = Profile(
            id=pid, full_name=name, email=email, entity_id=entity_id, manager_id=manager_id,
        )
        profile.roles = [UserRole(role=r) for r in roles]
        db.session.add(profile)
        db.session.flush()
        created += 1
    db.session.commit()
    logger.info("Seeded %d demo profiles", created)
    return created
