"""
Shared identities and permission sets for the test suite.
"""

STUDENT_ID = "STU-2024-0001"
OTHER_STUDENT_ID = "STU-2024-0002"

STUDENT_PERMISSIONS = [{"module": "booking", "action": ["create", "read", "update"]}]
READ_ONLY_PERMISSIONS = [{"module": "booking", "action": ["read"]}]
