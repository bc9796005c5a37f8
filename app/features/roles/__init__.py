"""
Role management: stored roles, their permission sets and the audit trail of edits.
"""
