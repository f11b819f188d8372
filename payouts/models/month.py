from ..extensions import db


class Month(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    month_key = db.Column(db.String(7), nullable=False, unique=True, index=True)  # YYYY-MM
    month_name = db.Column(db.String(32), default="")
