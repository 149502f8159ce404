"""
auth/ -- Accounts, credentials, and session tokens for videohub.

Layer rule: auth/ imports only core/, media/ (uploader protocol), stdlib, and
third-party libraries. It does NOT import from api/.
api/ imports from auth/, not the other way around.
"""
