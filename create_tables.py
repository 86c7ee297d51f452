from app.extensions import db
from app.models import Base
from main import create_app

app = create_app()

with app.app_context():
    Base.metadata.create_all(bind=db.engine)

print("Tables created successfully!")
