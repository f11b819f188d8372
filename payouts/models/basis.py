from datetime import datetime
from ..extensions import db

BASIS_TYPES = ("webapp", "manual", "bonus", "fine")


class BasisTypeOption(db.Model):
    """Choices configured for monthly_basis.basis_type."""

    __tablename__ = "basis_type_option"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(32), nullable=False, unique=True)


class MonthlyBasis(db.Model):
    __tablename__ = "monthly_basis"

    id = db.Column(db.Integer, primary_key=True)
    team_member_id = db.Column(db.Integer, db.ForeignKey("team_member.id"), nullable=False, index=True)
    month_id = db.Column(db.Integer, db.ForeignKey("month.id"), nullable=False, index=True)
    basis_type = db.Column(db.String(32), nullable=False)  # webapp|manual|bonus|fine
    amount_eur = db.Column(db.Numeric(12, 2))
    amount_usd = db.Column(db.Numeric(12, 2))
    notes = db.Column(db.Text, default="")

    # rate used to fill the second currency; fx_source=default flags a fallback
    fx_rate = db.Column(db.Float)
    fx_as_of = db.Column(db.String(10))
    fx_source = db.Column(db.String(16))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "team_member_id": self.team_member_id,
            "month_id": self.month_id,
            "basis_type": self.basis_type,
            "amount_eur": float(self.amount_eur) if self.amount_eur is not None else None,
            "amount_usd": float(self.amount_usd) if self.amount_usd is not None else None,
            "notes": self.notes or "",
            "fx_rate": self.fx_rate,
            "fx_as_of": self.fx_as_of,
            "fx_source": self.fx_source,
        }


# Seeds the basis_type choice list; existing options are left alone.
def ensure_basis_type_options(names=BASIS_TYPES) -> list[str]:
    have = {o.name for o in BasisTypeOption.query.all()}
    added = [n for n in names if n not in have]
    for n in added:
        db.session.add(BasisTypeOption(name=n))
    if added:
        db.session.commit()
    return added
