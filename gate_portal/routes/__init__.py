from gate_portal.routes.scheduled_tests import limiter, router

__all__ = ["limiter", "router"]
