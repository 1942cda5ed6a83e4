"""
Scheduling Domain

Slot availability, pricing and the reservation lifecycle for a single
bookable resource.

Structure:
- courses.py              # Course tiers (duration, normal/first-time price)
- repository.py           # Reservation and coupon queries
- availability_service.py # Open start times from confirmed bookings
- pricing_service.py      # First-time detection and coupons
- side_effects.py         # Calendar + email after a transition
- service.py              # create / confirm / deny
- router.py               # /api endpoints
"""
