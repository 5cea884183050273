from decimal import Decimal
from sqlmodel import Session, select
from app.core.security import create_access_token
from app.db.session import engine, create_db_and_tables
from app.models.book import Book
from app.models.user import User

DEMO_EMAIL = "reader@example.com"

def seed_books():
    print("Creating database and tables...")
    create_db_and_tables()

    with Session(engine) as session:
        user = session.exec(select(User).where(User.email == DEMO_EMAIL)).first()
        if not user:
            user = User(email=DEMO_EMAIL, name="Demo Reader")
            session.add(user)
            session.commit()
            session.refresh(user)
        print(f"Demo user id {user.id}, bearer token:\n{create_access_token(user.id)}")

        # Check if books already exist to avoid duplicates
        existing_books = session.exec(select(Book)).all()
        if existing_books:
            print(f"Database already contains {len(existing_books)} books. Skipping seed.")
            return

        print("Seeding initial books...")
        books = [
            Book(
                title="Le Petit Prince",
                author_name="Antoine de Saint-Exupery",
                price=Decimal("10.00"),
                cover_image_url="/covers/petit-prince.webp"
            ),
            Book(
                title="L'Etranger",
                author_name="Albert Camus",
                price=Decimal("5.00"),
                cover_image_url="/covers/etranger.webp"
            ),
            Book(
                title="Les Miserables",
                author_name="Victor Hugo",
                price=Decimal("18.50"),
                cover_image_url="/covers/miserables.webp"
            ),
        ]

        for book in books:
            session.add(book)

        session.commit()
        print(f"Successfully seeded {len(books)} books!")

if __name__ == "__main__":
    seed_books()
