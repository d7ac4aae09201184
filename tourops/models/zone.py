from tourops.extensions import db

class Zone(db.Model):
    __tablename__ = 'zone'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    city = db.Column(db.String(128), nullable=True)

    def __repr__(self):
        return f"<Zone {self.id} {self.name}>"
