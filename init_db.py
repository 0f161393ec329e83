# init_db.py
import argparse

from clinicbook.db.base import Base
from clinicbook.db.sql import make_engine, make_store
from clinicbook.seed import seed_initial_data


def init_store(reset: bool = False) -> None:
    engine = make_engine()
    if reset:
        Base.metadata.drop_all(engine)

    store = make_store(engine)
    if seed_initial_data(store):
        print("Store created and sample data seeded!")
    else:
        print("Store already initialized; admin account checked.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the clinic store and seed sample data")
    parser.add_argument("--reset", action="store_true", help="drop all stored data first")
    args = parser.parse_args()
    init_store(reset=args.reset)
