"""
Database configuration.
SQLite by default, PostgreSQL when DB_TYPE=postgresql.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
import logging
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(Database, cls).__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        """Initialize database connection"""
        db_type = os.getenv('DB_TYPE', 'sqlite')
        is_test = os.getenv('TEST') == '1' or os.getenv('TEST_DB') == '1'

        if db_type == 'postgresql':
            db_host = os.getenv('DB_HOST', 'localhost')
            db_port = os.getenv('DB_PORT', '5432')

            default_db_name = 'zeta_farm_test' if is_test else 'zeta_farm'
            db_name = os.getenv('DB_NAME', default_db_name)

            # TEST mode wins unless DB_NAME was overridden to something else
            if is_test and db_name == 'zeta_farm':
                db_name = 'zeta_farm_test'

            logger.info(f"[DATABASE] Config: Host={db_host}, DB={db_name}, TestMode={is_test}")
            db_user = os.getenv('DB_USER', 'farm_user')
            db_password = os.getenv('DB_PASSWORD', '')

            connection_string = f'postgresql://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}'

            self.engine = create_engine(
                connection_string,
                pool_size=20,
                max_overflow=40,
                pool_pre_ping=True,
                pool_recycle=3600,
                echo=False
            )
        else:
            db_name = 'test_farm.db' if is_test else 'farm.db'

            connection_string = f'sqlite:///{db_name}'

            self.engine = create_engine(
                connection_string,
                connect_args={'check_same_thread': False, 'timeout': 30},
                echo=False
            )

        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine
        )

        # Register models on Base.metadata before creating tables
        import models.user  # noqa: F401
        import models.plot  # noqa: F401
        # Deployments managed by alembic set DB_AUTO_CREATE=0
        if os.getenv('DB_AUTO_CREATE', '1') == '1':
            self.create_all_tables()

        logger.info(f"[DATABASE] Connected to {db_type.upper()} database")

    def get_session(self):
        """Get a new database session"""
        return self.SessionLocal()

    def create_all_tables(self):
        """Create all tables"""
        Base.metadata.create_all(bind=self.engine)
