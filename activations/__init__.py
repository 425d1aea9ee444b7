"""
Activations module - License holders.

This module handles:
- LicenseHolder entity (trial window and bound license key)
- One activated holder per license key
"""
