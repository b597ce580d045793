"""
Jobs Package

Background alert evaluation and alert retention cleanup
(see jobs/alert_scheduler.py).
"""
