"""
CSRF Protection Configuration

This module provides a centralized CSRFProtect instance that can be:
1. Initialized in main.py with the Flask app
2. Imported in controllers to use @csrf.exempt decorator

Usage in controllers:
    from salon_booking.core.csrf_config import csrf

    @csrf.exempt
    @appointment_bp.route("", methods=["POST"])
    def book_appointment():
        # Exempt from CSRF (bearer-token authenticated JSON API)
        pass
"""

from flask_wtf.csrf import CSRFProtect

# Global CSRF instance - initialized in create_app()
csrf = CSRFProtect()
