"""Church event check-in package.

Organized by feature modules (identity, registrations, childcare, courses,
logs) with a thin Flask controller layer over service/repository layers.
"""
