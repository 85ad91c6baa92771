"""HTTP routers for datasets and analyses."""
