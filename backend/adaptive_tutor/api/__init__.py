"""HTTP routers for the Adaptive Tutor API."""
