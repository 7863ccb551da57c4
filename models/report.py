"""Stored PageSpeed report model."""

from . import db, utcnow


class Report(db.Model):
    """A generated report with its rendered PDF."""

    __tablename__ = "reports"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    url = db.Column(db.String(2048), nullable=False)
    report_data = db.Column(db.JSON, nullable=False, default=dict)
    pdf = db.deferred(db.Column(db.LargeBinary, nullable=False))
    performance_score = db.Column(db.Integer, nullable=True)
    seo_score = db.Column(db.Integer, nullable=True)
    accessibility_score = db.Column(db.Integer, nullable=True)
    generated_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    owner = db.relationship("User", back_populates="reports")

    def to_dict(self) -> dict:
        """Serialize report metadata; the PDF is served separately."""

        return {
            "id": self.id,
            "user_id": self.user_id,
            "url": self.url,
            "performance_score": self.performance_score,
            "seo_score": self.seo_score,
            "accessibility_score": self.accessibility_score,
            "generated_at": self.generated_at.isoformat() if self.generated_at else None,
        }

    def __repr__(self) -> str:
        return f"<Report id={self.id} user_id={self.user_id} url={self.url}>"
