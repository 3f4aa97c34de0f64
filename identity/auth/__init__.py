"""
Authentication and authorization for the identity service.

This package provides:
- User registration and login
- Password hashing
- JWT token handling
- Role-based access control
"""
