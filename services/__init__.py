"""
Use cases of the check-in platform: authentication (token issue, rotation,
revocation), the request authentication gate, and check-in coordination.
Services depend only on the abstract ports in services.ports.
"""
