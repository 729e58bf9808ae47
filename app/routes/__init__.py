# ── Schedules ─────────────────────────────────────────────────
from app.routes.schedule_router import router as schedule_router

# ── Bookings ──────────────────────────────────────────────────
from app.routes.booking_router import router as booking_router
