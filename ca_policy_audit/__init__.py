"""
Conditional Access Policy Auditor
=================================
Reads Conditional Access policies from Microsoft Graph, checks them against
a small rule table, and renders the results to the terminal, an HTML report,
or a portable JSON export.

WARNING: This tool operates in STRICT READ-ONLY mode.
         No policy is ever created, changed or deleted.
"""

__version__ = "1.0.0"
__mode__ = "READ-ONLY"
