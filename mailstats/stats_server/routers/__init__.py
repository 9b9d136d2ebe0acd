"""
MailStats API Routers.

Modules:
    health – Health, readiness and liveness checks
    stats  – Campaign statistics resolve / enrich / summary
"""
