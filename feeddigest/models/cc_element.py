from ..extensions import db
from .base import OrgScopedMixin, TimestampMixin


class CCElement(db.Model, OrgScopedMixin, TimestampMixin):
    """A culture-code element that feed items are posted against."""
    __tablename__ = "cc_elements"
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    narrative = db.Column(db.Text)

    def narrative_printable(self):
        if self.narrative:
            return f"{self.title}: {self.narrative}"
        return self.title
