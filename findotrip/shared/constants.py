"""Shared status and role vocabularies"""

# User roles
CUSTOMER = "CUSTOMER"
PROPERTY_OWNER = "PROPERTY_OWNER"
VEHICLE_OWNER = "VEHICLE_OWNER"
TOUR_GUIDE = "TOUR_GUIDE"
ADMIN = "ADMIN"

USER_ROLES = (CUSTOMER, PROPERTY_OWNER, VEHICLE_OWNER, TOUR_GUIDE, ADMIN)
PROVIDER_ROLES = (PROPERTY_OWNER, VEHICLE_OWNER, TOUR_GUIDE)

# Service kinds (one per marketplace vertical)
PROPERTY = "property"
VEHICLE = "vehicle"
TOUR = "tour"
SERVICE_TYPES = (PROPERTY, VEHICLE, TOUR)

# Which provider role owns which kind of service
PROVIDER_ROLE_FOR_SERVICE = {
    PROPERTY: PROPERTY_OWNER,
    VEHICLE: VEHICLE_OWNER,
    TOUR: TOUR_GUIDE,
}

# Listing approval
APPROVAL_PENDING = "PENDING"
APPROVAL_APPROVED = "APPROVED"
APPROVAL_REJECTED = "REJECTED"

# Booking status
BOOKING_PENDING = "PENDING"
BOOKING_CONFIRMED = "CONFIRMED"
BOOKING_COMPLETED = "COMPLETED"
BOOKING_CANCELLED = "CANCELLED"
BOOKING_REFUNDED = "REFUNDED"
BOOKING_NO_SHOW = "NO_SHOW"

# Statuses that hold inventory
ACTIVE_BOOKING_STATUSES = (BOOKING_PENDING, BOOKING_CONFIRMED)

# Payment status
PAYMENT_PENDING = "PENDING"
PAYMENT_PAID = "PAID"
PAYMENT_PARTIALLY_REFUNDED = "PARTIALLY_REFUNDED"
PAYMENT_REFUNDED = "REFUNDED"
PAYMENT_FAILED = "FAILED"

# Commission / payout status
COMMISSION_PENDING = "PENDING"
COMMISSION_PAID = "PAID"
COMMISSION_CANCELLED = "CANCELLED"

PAYOUT_PENDING = "PENDING"
PAYOUT_PROCESSED = "PROCESSED"

# Review request status
REVIEW_REQUEST_PENDING = "PENDING"
REVIEW_REQUEST_COMPLETED = "COMPLETED"
REVIEW_REQUEST_EXPIRED = "EXPIRED"

# Notification types
NOTIFY_BOOKING_CREATED = "BOOKING_CREATED"
NOTIFY_BOOKING_CONFIRMED = "BOOKING_CONFIRMED"
NOTIFY_BOOKING_CANCELLED = "BOOKING_CANCELLED"
NOTIFY_BOOKING_STATUS = "BOOKING_STATUS"
NOTIFY_REVIEW_RECEIVED = "REVIEW_RECEIVED"
NOTIFY_REVIEW_REQUEST = "REVIEW_REQUEST"
NOTIFY_RATING_ALERT = "RATING_ALERT"
NOTIFY_SUPPORT_TICKET_CREATED = "SUPPORT_TICKET_CREATED"
NOTIFY_SUPPORT_TICKET_UPDATED = "SUPPORT_TICKET_UPDATED"
NOTIFY_SUPPORT_MESSAGE_RECEIVED = "SUPPORT_MESSAGE_RECEIVED"
NOTIFY_LISTING_APPROVED = "LISTING_APPROVED"
NOTIFY_LISTING_REJECTED = "LISTING_REJECTED"
NOTIFY_CHAT_MESSAGE = "CHAT_MESSAGE"
