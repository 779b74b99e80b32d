"""Post-operative emergency detection and escalation.

Classifies a patient's vital signs and reported symptoms against a catalog
of clinical rules, then drives notification, documentation and follow-up.
"""
