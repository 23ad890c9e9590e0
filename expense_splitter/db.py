from sqlmodel import SQLModel, create_engine, Session
from expense_splitter.config import DATABASE_URL

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, echo=False, connect_args=connect_args)

def init_db(bind=None):
    # Import models so SQLModel.metadata includes them
    import expense_splitter.models.user, expense_splitter.models.group, expense_splitter.models.expense
    import expense_splitter.models.payment, expense_splitter.models.balance
    SQLModel.metadata.create_all(bind or engine)

def get_session():
    with Session(engine) as session:
        yield session
