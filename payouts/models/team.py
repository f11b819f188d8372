from ..extensions import db

PAYOUT_TYPES = ("percentage", "flat_fee", "hybrid", "none")


class TeamMember(db.Model):
    __tablename__ = "team_member"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), default="")
    department = db.Column(db.String(64), default="")
    role = db.Column(db.String(64), default="")
    category = db.Column(db.String(32), default="")
    status = db.Column(db.String(16), default="active")  # active|inactive

    # payout config
    payout_type = db.Column(db.String(16), default="none")  # percentage|flat_fee|hybrid|none
    payout_percentage = db.Column(db.Numeric(7, 4))  # 0.1000 == 10 %
    payout_flat_fee = db.Column(db.Numeric(12, 2))
    currency = db.Column(db.String(3), default="eur")  # eur|usd
