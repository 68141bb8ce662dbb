"""Outpatient queue application for the SmartOPD backend.

This package contains the models, services, serializers, views and
route registrations for token registration and queue management.
"""
