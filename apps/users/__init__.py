"""Users app package.

Defines the custom user model (email login, camper/owner/admin roles).
Use ``apps.users.models.CustomUser`` as the AUTH_USER_MODEL throughout
the project.
"""
