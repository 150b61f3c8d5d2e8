"""Enumerated values shared across domains"""

# User types
CUSTOMER = "customer"
BARBER = "barber"
ADMIN = "admin"

# User statuses
USER_ACTIVE = "active"

# Barber statuses
BARBER_PENDING = "pending"
BARBER_ACTIVE = "active"
BARBER_INACTIVE = "inactive"

# Booking durations (minutes)
MIN_BOOKING_DURATION = 15
MAX_BOOKING_DURATION = 480
