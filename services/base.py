"""Base services container for dependency injection."""

from config import Config
from db.manager import DatabaseManager


class Services:
    """Container for all application services.

    This class provides a centralized way to access all services and makes
    it easy to inject mock services for testing. A container is meant to
    live for one request or one CLI invocation.

    Args:
        config: Application configuration object.
        db_manager: Optional database manager for testing. If provided, config is ignored.
        logger: Optional logger handed to the engines.
    """

    def __init__(self, config: Config, db_manager=None, logger=None):
        """Initialize services with configuration.

        Args:
            config: Config object containing application configuration.
            db_manager: Optional database manager for dependency injection (testing).
                       If None, creates DatabaseManager from config.
            logger: Optional logger for the hierarchy and goal engines.
        """
        self.config = config
        self.db_manager = db_manager or DatabaseManager(config)

        # Lazy import to avoid circular dependencies
        from services.categories import CategoryService
        from services.category_hierarchy import CategoryHierarchyService, CategoryTreeCache
        from services.transactions import TransactionService
        from services.holdings import AssetService, LiabilityService
        from services.goals import GoalService
        from services.goal_progress import GoalProgressService

        self.tree_cache = CategoryTreeCache()

        self.categories = CategoryService(self.db_manager)
        self.transactions = TransactionService(self.db_manager, tree_cache=self.tree_cache)
        self.assets = AssetService(self.db_manager)
        self.liabilities = LiabilityService(self.db_manager)
        self.goals = GoalService(self.db_manager)

        self.hierarchy = CategoryHierarchyService(
            self.db_manager,
            self.categories,
            self.transactions,
            tree_cache=self.tree_cache,
            logger=logger,
        )
        self.goal_progress = GoalProgressService(
            self.db_manager,
            self.goals,
            self.transactions,
            self.assets,
            self.liabilities,
            logger=logger,
        )
