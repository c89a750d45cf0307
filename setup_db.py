# setup_db.py
import argparse
import json
import logging

from config import configure_logging, settings
from db import Base, make_engine, make_session_factory
from models import PracticeQuestion

logger = logging.getLogger("setup_db")


def load_practice_questions(session, path):
    with open(path, "r", encoding="utf-8") as f:
        questions = json.load(f)

    session.add_all([PracticeQuestion(**q) for q in questions])
    session.commit()
    return len(questions)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Create the quiz progress tables.")
    parser.add_argument("--reset", action="store_true", help="drop all tables before creating them")
    parser.add_argument("--seed", metavar="PATH", help="JSON file of practice questions to load")
    parser.add_argument("--database-url", default=settings.database_url)
    args = parser.parse_args(argv)

    configure_logging(settings.log_level)
    engine = make_engine(args.database_url)

    if args.reset:
        logger.info("Dropping tables...")
        Base.metadata.drop_all(bind=engine)
    logger.info("Creating tables...")
    Base.metadata.create_all(bind=engine)

    if args.seed:
        session = make_session_factory(engine)()
        try:
            count = load_practice_questions(session, args.seed)
        finally:
            session.close()
        logger.info("Loaded %d practice questions from %s", count, args.seed)

    logger.info("Done.")


if __name__ == "__main__":
    main()
