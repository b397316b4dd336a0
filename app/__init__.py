"""Prove Identity backend.

Backend-for-frontend for Prove phone-based identity verification:
- Serves the three-step verification wizard
- Caches the Prove access token (client-credentials grant)
- Proxies start, validate and complete calls to the Prove v3 API
"""
