"""
Role capability sets.

Each journal role maps to exactly one capability class. Views and
permissions ask what a user *can* do instead of comparing role strings.
"""


class Capabilities:
    """Base capability set: an anonymous or unknown account can do nothing."""

    role = None
    can_submit = False
    can_review = False
    can_handle_submissions = False
    can_assign_editors = False
    can_publish = False
    can_administer = False

    def __repr__(self):
        return f"<{self.__class__.__name__} role={self.role}>"


class VisitorCapabilities(Capabilities):
    role = 'VISITOR'


class AuthorCapabilities(Capabilities):
    role = 'AUTHOR'
    can_submit = True


class ReviewerCapabilities(Capabilities):
    role = 'REVIEWER'
    can_submit = True
    can_review = True


class EditorCapabilities(Capabilities):
    role = 'EDITOR'
    can_submit = True
    can_review = True
    can_handle_submissions = True


class AdminCapabilities(Capabilities):
    role = 'ADMIN'
    can_submit = True
    can_review = True
    can_handle_submissions = True
    can_assign_editors = True
    can_publish = True
    can_administer = True


ROLE_CAPABILITIES = {
    cls.role: cls()
    for cls in (
        VisitorCapabilities,
        AuthorCapabilities,
        ReviewerCapabilities,
        EditorCapabilities,
        AdminCapabilities,
    )
}

NO_CAPABILITIES = Capabilities()


def capabilities_for(user):
    """Return the capability set for ``user``."""
    if user is None or not getattr(user, 'is_authenticated', False) or not user.is_active:
        return NO_CAPABILITIES
    if user.is_superuser:
        return ROLE_CAPABILITIES['ADMIN']
    try:
        return ROLE_CAPABILITIES[user.role]
    except KeyError:
        raise ValueError(f"Unknown role {user.role!r} for user {user.pk}")
