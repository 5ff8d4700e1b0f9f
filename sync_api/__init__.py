"""HTTP front end for the one-time code roster sync."""
