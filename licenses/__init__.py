"""
Licenses module - License key generation and License management.

This module handles:
- License key strategies, generation and format validation
- License entity and domain logic
- License lifecycle (create, activate, suspend, resume, revoke, renew)
- Usage metering, feature gating and the restriction gate
"""
