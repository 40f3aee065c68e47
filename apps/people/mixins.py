from django.utils.functional import cached_property

from apps.people.services import resolve_viewer


class ViewerMixin:
    """
    Adds ``self.viewer``: the Participant linked to the requesting user.

    Every balance is computed from the viewer's point of view, so views pass
    it explicitly into the services.
    """

    @cached_property
    def viewer(self):
        return resolve_viewer(user=self.request.user)

    def is_schema_request(self):
        """True while drf-spectacular introspects the view without a real user."""
        return getattr(self, 'swagger_fake_view', False)
