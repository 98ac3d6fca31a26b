"""HTTP routers for Channel Service."""
