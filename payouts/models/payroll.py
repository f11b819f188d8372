from datetime import datetime
from ..extensions import db


class PayoutRun(db.Model):
    __tablename__ = "payout_run"

    id = db.Column(db.Integer, primary_key=True)
    month_id = db.Column(db.Integer, db.ForeignKey("month.id"), nullable=False)
    status = db.Column(db.String(16), default="draft")  # draft|finalized
    notes = db.Column(db.Text, default="")
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    __table_args__ = (db.UniqueConstraint("month_id", name="uq_payout_run_month"),)


# columns written by the reconciliation step, in audit order
LINE_FIELDS = (
    "payout_type",
    "payout_percentage",
    "payout_flat_fee",
    "basis_webapp_amount",
    "basis_manual_amount",
    "bonus_amount",
    "adjustments_amount",
    "basis_total",
    "payout_amount",
    "amount_eur",
    "amount_usd",
    "currency",
    "fx_rate",
    "breakdown_json",
)


class PayoutLine(db.Model):
    __tablename__ = "payout_line"

    id = db.Column(db.Integer, primary_key=True)
    run_id = db.Column(db.Integer, db.ForeignKey("payout_run.id"), nullable=False, index=True)
    team_member_id = db.Column(db.Integer, db.ForeignKey("team_member.id"), nullable=False, index=True)

    payout_type = db.Column(db.String(16), default="none")
    payout_percentage = db.Column(db.Numeric(7, 4))
    payout_flat_fee = db.Column(db.Numeric(12, 2))

    basis_webapp_amount = db.Column(db.Numeric(12, 2), default=0)
    basis_manual_amount = db.Column(db.Numeric(12, 2), default=0)
    bonus_amount = db.Column(db.Numeric(12, 2), default=0)
    adjustments_amount = db.Column(db.Numeric(12, 2), default=0)
    basis_total = db.Column(db.Numeric(12, 2), default=0)

    payout_amount = db.Column(db.Numeric(12, 2), default=0)
    amount_eur = db.Column(db.Numeric(12, 2), default=0)
    amount_usd = db.Column(db.Numeric(12, 2), default=0)
    currency = db.Column(db.String(3), default="eur")
    fx_rate = db.Column(db.Float)
    breakdown_json = db.Column(db.Text, default="")

    __table_args__ = (db.UniqueConstraint("run_id", "team_member_id", name="uq_payout_line_member"),)

    def to_dict(self) -> dict:
        out = {"id": self.id, "run_id": self.run_id, "team_member_id": self.team_member_id}
        for f in LINE_FIELDS:
            v = getattr(self, f)
            if f in ("payout_type", "currency", "breakdown_json", "fx_rate"):
                out[f] = v
            else:
                out[f] = float(v) if v is not None else None
        return out
