"""Message templates for booking-related notifications"""

BOOKING_CONFIRMATION = "booking_confirmation"
BOOKING_REMINDER = "booking_reminder"
BOOKING_CANCELLED = "booking_cancelled"
BOOKING_RESCHEDULED = "booking_rescheduled"
BOOKING_COMPLETED = "booking_completed"
REVIEW_REQUEST = "review_request"

NOTIFICATION_TYPES = (
    BOOKING_CONFIRMATION,
    BOOKING_REMINDER,
    BOOKING_CANCELLED,
    BOOKING_RESCHEDULED,
    BOOKING_COMPLETED,
    REVIEW_REQUEST,
    "review_response",
    "payment_received",
    "payment_failed",
    "account_welcome",
    "account_verification",
    "password_reset",
    "promotion",
    "system_alert",
)

PRIORITIES = ("low", "normal", "high", "urgent")
CHANNELS = ("app", "email", "sms", "push")

TIME_FORMAT = "%B %d, %Y at %I:%M %p UTC"

# type -> (title, message, priority); messages are formatted with booking fields
BOOKING_TEMPLATES = {
    BOOKING_CONFIRMATION: (
        "Booking Confirmed",
        "Your booking {booking_number} has been confirmed for {start}",
        "normal",
    ),
    BOOKING_REMINDER: (
        "Upcoming Appointment Reminder",
        "Reminder: your appointment {booking_number} is scheduled for {start}",
        "high",
    ),
    BOOKING_CANCELLED: (
        "Booking Cancelled",
        "Your booking {booking_number} has been cancelled",
        "high",
    ),
    BOOKING_RESCHEDULED: (
        "Booking Rescheduled",
        "Your booking {booking_number} has been rescheduled from {old_start} to {start}",
        "high",
    ),
    BOOKING_COMPLETED: (
        "Booking Completed",
        "Your booking {booking_number} is complete. Thank you for visiting!",
        "normal",
    ),
    REVIEW_REQUEST: (
        "How was your experience?",
        "Tell us about your appointment {booking_number} by leaving a review",
        "normal",
    ),
}

# booking_confirmation for a booking the barber has not confirmed yet
BOOKING_RECEIVED_TEMPLATE = (
    "Booking Received",
    "We received your booking {booking_number} for {start}. The barber will confirm it shortly",
    "normal",
)


def render_booking_template(notification_type: str, booking, old_start=None) -> tuple[str, str, str]:
    """Return (title, message, priority) for a booking notification"""
    if notification_type == BOOKING_CONFIRMATION and booking.status == "pending":
        title, message, priority = BOOKING_RECEIVED_TEMPLATE
    else:
        title, message, priority = BOOKING_TEMPLATES[notification_type]
    start = booking.scheduled_start_time.strftime(TIME_FORMAT)
    old = old_start.strftime(TIME_FORMAT) if old_start else start
    return title, message.format(booking_number=booking.booking_number, start=start, old_start=old), priority
