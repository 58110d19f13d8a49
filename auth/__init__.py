"""
auth — Customer account module.

Provides:
  • Opaque verification / reset tokens and signed session tokens
  • Password hashing (scrypt with random salt)
  • Typed auth state over the customer attribute map
  • Register / verify / login / forgot / reset / complete-registration flows
  • API routes and the ``get_current_customer`` FastAPI dependency
"""
