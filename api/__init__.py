"""
API Module for the Ammin insurance relay.

FastAPI application with routes for:
- WhatsApp webhook verification and message delivery
- Admin session views
- Debug history views

The application lives in `api.main`.
"""
