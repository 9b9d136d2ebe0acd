"""
MailStats: campaign statistics resolution for Acelle Mail accounts.
"""

__version__ = "0.1.0"
