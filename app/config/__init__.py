# =============================================================================
# Django Project Configuration Package
# =============================================================================
# Settings, URL routing and the WSGI/ASGI entry points for the back-office.
# =============================================================================
