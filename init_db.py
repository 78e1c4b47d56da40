from app import create_app, purge_sessions
from models import db

app = create_app()

with app.app_context():
    print("Creating tables...")
    db.create_all()
    print("Tables created.")

print(f"Purged {purge_sessions(app)} expired sessions.")
