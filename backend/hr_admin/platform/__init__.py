"""
Platform-level modules for multi-tenant enforcement and security.

- errors: Consistent error handling and the response envelope
- tenant_context: Organization resolution and support-mode impersonation
- policy: Pure permission policy shared by the API and the client mirror
- rbac: FastAPI permission dependencies backed by the database
"""
