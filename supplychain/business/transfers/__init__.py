"""
Transfer request workflow.

PENDING -> ADJUSTED -> APPROVED (PENDING may also go straight to APPROVED).
Only the fulfilling department (from_dept) may adjust or approve a request.
"""
