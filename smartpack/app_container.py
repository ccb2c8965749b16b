# ==============================================================================
# CONTENEDOR DE DEPENDENCIAS - Inyección de servicios
# ==============================================================================
# Arma una sola vez el cliente HTTP, la caché, los repositorios y los
# servicios del panel. En tests basta con pasar un ApiClient falso: todo lo
# demás se construye encima, perezosamente, la primera vez que se pide.
#
# ═══════════════════════════════════════════════════════════════════════════════
# ASIGNACIONES SIN BACKEND
# ═══════════════════════════════════════════════════════════════════════════════
# Con SMARTPACK_OFFLINE_ASSIGNMENTS=1 las asignaciones se guardan en el libro
# append-only en memoria (InMemoryAssignmentRepository) en vez de la API.
# Los servicios NO cambian: dependen de IAssignmentRepository.
# ==============================================================================

from typing import Optional

from smartpack import config
from smartpack.cache.query_cache import QueryCache
from smartpack.session_manager import SessionManager

# ═══════════════════════════════════════════════════════════════════════════════
# REPOSITORIOS - Acceso a la API REST
# ═══════════════════════════════════════════════════════════════════════════════
from smartpack.repositories import (
    ApiClient,
    AreaRepository,
    AssignmentHistoryRepository,
    AssignmentRepository,
    AuditLogRepository,
    BoxRepository,
    EnablementHistoryRepository,
    InMemoryAssignmentRepository,
    ProductRepository,
    UserRepository,
    WarehouseRepository,
)

# ═══════════════════════════════════════════════════════════════════════════════
# SERVICIOS - Capa de lógica de negocio
# ═══════════════════════════════════════════════════════════════════════════════
from smartpack.services import (
    AreaService,
    AuthService,
    BatchRunner,
    BoxService,
    HistoryService,
    MutationService,
    ProductService,
    UserService,
    VisibilityService,
    WarehouseAssignmentsService,
    WarehouseService,
)


class AppContainer:
    """
    Dueño único de repositorios y servicios del proceso.

    Cada propiedad crea su objeto al primer acceso y lo reutiliza.

    Uso:
        container = AppContainer()
        areas = container.area_service.get_tree()
        users = container.visibility_service.visible_users(actor)
    """

    _instance: Optional['AppContainer'] = None

    def __new__(cls, client: ApiClient = None, cache: QueryCache = None):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, client: ApiClient = None, cache: QueryCache = None):
        """
        Inicializa el contenedor.

        Args:
            client: Cliente HTTP (default: ApiClient sobre SMARTPACK_API_URL)
            cache: Caché de consultas (default: QueryCache con la vigencia de config)
        """
        if self._initialized:
            return

        self._client = client
        self._cache = cache
        self._session_manager: Optional[SessionManager] = None
        self._batch_runner: Optional[BatchRunner] = None
        self._mutations: Optional[MutationService] = None
        self._clear_lazy()

        self._initialized = True

    def _clear_lazy(self) -> None:
        # Repositorios (lazy loading)
        self._area_repo = None
        self._user_repo = None
        self._warehouse_repo = None
        self._assignment_repo = None
        self._box_repo = None
        self._product_repo = None
        self._assignment_history_repo = None
        self._audit_repo = None
        self._enablement_repo = None

        # Servicios (lazy loading)
        self._visibility_service = None
        self._area_service = None
        self._user_service = None
        self._warehouse_service = None
        self._warehouse_assignments_service = None
        self._box_service = None
        self._product_service = None
        self._history_service = None
        self._auth_service = None

    # =========================================================================
    # INFRAESTRUCTURA
    # =========================================================================

    @property
    def session_manager(self) -> SessionManager:
        """Gestor de expiración de sesión (singleton global)."""
        if self._session_manager is None:
            self._session_manager = SessionManager.get_instance()
        return self._session_manager

    @property
    def client(self) -> ApiClient:
        """Cliente HTTP compartido."""
        if self._client is None:
            self._client = ApiClient(session_manager=self.session_manager)
        return self._client

    @property
    def cache(self) -> QueryCache:
        """Caché de consultas (único recurso mutable compartido)."""
        if self._cache is None:
            self._cache = QueryCache()
        return self._cache

    @property
    def mutations(self) -> MutationService:
        if self._mutations is None:
            self._mutations = MutationService(self.cache)
        return self._mutations

    @property
    def batch_runner(self) -> BatchRunner:
        if self._batch_runner is None:
            self._batch_runner = BatchRunner()
        return self._batch_runner

    # =========================================================================
    # REPOSITORIOS
    # =========================================================================

    @property
    def area_repo(self) -> AreaRepository:
        if self._area_repo is None:
            self._area_repo = AreaRepository(self.client)
        return self._area_repo

    @property
    def user_repo(self) -> UserRepository:
        if self._user_repo is None:
            self._user_repo = UserRepository(self.client)
        return self._user_repo

    @property
    def warehouse_repo(self) -> WarehouseRepository:
        if self._warehouse_repo is None:
            self._warehouse_repo = WarehouseRepository(self.client)
        return self._warehouse_repo

    @property
    def assignment_repo(self):
        """Repositorio de asignaciones (API o libro en memoria)."""
        if self._assignment_repo is None:
            if config.OFFLINE_ASSIGNMENTS:
                self._assignment_repo = InMemoryAssignmentRepository()
            else:
                self._assignment_repo = AssignmentRepository(self.client)
        return self._assignment_repo

    @property
    def box_repo(self) -> BoxRepository:
        if self._box_repo is None:
            self._box_repo = BoxRepository(self.client)
        return self._box_repo

    @property
    def product_repo(self) -> ProductRepository:
        if self._product_repo is None:
            self._product_repo = ProductRepository(self.client)
        return self._product_repo

    @property
    def assignment_history_repo(self) -> AssignmentHistoryRepository:
        if self._assignment_history_repo is None:
            self._assignment_history_repo = AssignmentHistoryRepository(self.client)
        return self._assignment_history_repo

    @property
    def audit_repo(self) -> AuditLogRepository:
        if self._audit_repo is None:
            self._audit_repo = AuditLogRepository(self.client)
        return self._audit_repo

    @property
    def enablement_repo(self) -> EnablementHistoryRepository:
        if self._enablement_repo is None:
            self._enablement_repo = EnablementHistoryRepository(self.client)
        return self._enablement_repo

    # =========================================================================
    # SERVICIOS
    # =========================================================================

    @property
    def visibility_service(self) -> VisibilityService:
        if self._visibility_service is None:
            self._visibility_service = VisibilityService(
                self.cache, self.area_repo, self.warehouse_repo, self.user_repo
            )
        return self._visibility_service

    @property
    def area_service(self) -> AreaService:
        if self._area_service is None:
            self._area_service = AreaService(
                self.cache, self.mutations, self.area_repo, self.assignment_repo
            )
        return self._area_service

    @property
    def user_service(self) -> UserService:
        if self._user_service is None:
            self._user_service = UserService(
                self.cache,
                self.mutations,
                self.user_repo,
                self.assignment_repo,
                audit_repo=self.audit_repo,
                assignment_history_repo=self.assignment_history_repo,
                enablement_repo=self.enablement_repo,
                area_repo=self.area_repo,
                warehouse_repo=self.warehouse_repo,
                batch_runner=self.batch_runner,
                visibility=self.visibility_service,
            )
        return self._user_service

    @property
    def warehouse_service(self) -> WarehouseService:
        if self._warehouse_service is None:
            self._warehouse_service = WarehouseService(
                self.cache, self.mutations, self.warehouse_repo
            )
        return self._warehouse_service

    @property
    def warehouse_assignments_service(self) -> WarehouseAssignmentsService:
        if self._warehouse_assignments_service is None:
            self._warehouse_assignments_service = WarehouseAssignmentsService(
                self.mutations,
                self.assignment_repo,
                self.warehouse_service,
                self.area_service,
                self.visibility_service,
                batch_runner=self.batch_runner,
            )
        return self._warehouse_assignments_service

    @property
    def box_service(self) -> BoxService:
        if self._box_service is None:
            self._box_service = BoxService(self.cache, self.mutations, self.box_repo)
        return self._box_service

    @property
    def product_service(self) -> ProductService:
        if self._product_service is None:
            self._product_service = ProductService(self.cache, self.mutations, self.product_repo)
        return self._product_service

    @property
    def history_service(self) -> HistoryService:
        if self._history_service is None:
            self._history_service = HistoryService(
                self.cache, self.enablement_repo, self.audit_repo
            )
        return self._history_service

    @property
    def auth_service(self) -> AuthService:
        if self._auth_service is None:
            self._auth_service = AuthService(self.client, self.user_repo)
        return self._auth_service

    # =========================================================================
    # UTILIDADES
    # =========================================================================

    def reset(self) -> None:
        """
        Reinicia repositorios y servicios y vacía la caché.
        Útil para testing o para reconectar con otro backend.
        """
        self._clear_lazy()
        self._mutations = None
        if self._cache is not None:
            self._cache.clear()

    @classmethod
    def get_instance(cls, client: ApiClient = None) -> 'AppContainer':
        """
        Devuelve el contenedor del proceso, creándolo si no existe.

        Args:
            client: Cliente HTTP (solo se usa en la primera llamada)
        """
        if cls._instance is None:
            return cls(client)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Descarta el contenedor actual; el próximo acceso arma uno nuevo."""
        if cls._instance is not None:
            cls._instance.reset()
            cls._instance = None


def get_container(client: ApiClient = None) -> AppContainer:
    """Atajo usado por las rutas Flask."""
    return AppContainer.get_instance(client)
