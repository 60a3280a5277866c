"""
Database setup script
Creates the users, forms and plans tables
"""

from dotenv import load_dotenv
load_dotenv()

from database.database import engine, Base
from database.models import User, Form, Plan  # noqa: F401  (register tables on Base)


def create_tables():
    """Create all tables in the database"""
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    print("Tables created successfully!")
    print("\nCreated tables:")
    print("  - users")
    print("  - forms")
    print("  - plans")


if __name__ == "__main__":
    create_tables()
