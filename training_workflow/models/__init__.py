"""
Training Approval Routing Service
Shared SQLAlchemy handle and model registry.

Usage:
    from training_workflow.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
