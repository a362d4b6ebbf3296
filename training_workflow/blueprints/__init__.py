"""
Training Approval Routing Service
Blueprint registry.
"""
