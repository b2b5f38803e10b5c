"""Internal constants shared across the library."""

USER_AGENT = "pyequip/1"

#: Discriminator of the session tag smuggled inside an item's condition text.
SESSION_TAG_PREFIX = "SESION"
SESSION_TAG_SEPARATOR = "|"
SESSION_TAG_FIELDS = 7

DEFAULT_ID_PREFIX = "GEN-"
DEFAULT_CATEGORY = "Accesorios"
DEFAULT_CLOSE_COMMENT = "Devuelto Ok"
DEFAULT_REMOVED_CONDITION = "Devuelto"

ACTION_UPDATE_STATUS = "UPDATE_STATUS"
ACTION_LOG_SESSION = "LOG_SESSION"

# ------------------------------------------------------------------
# Column aliases seen in the spreadsheet feed
# ------------------------------------------------------------------

EQUIPMENT_ID_KEYS: tuple[str, ...] = ("Equipo_ID", "ID", "Id", "Codigo", "Code")
EQUIPMENT_NAME_KEYS: tuple[str, ...] = ("Nombre_Equipo", "Nombre")
EQUIPMENT_CATEGORY_KEYS: tuple[str, ...] = ("Categoría", "Categoria")
EQUIPMENT_STATUS_KEYS: tuple[str, ...] = ("Estado", "Status", "Estado Actual")
EQUIPMENT_CONDITION_KEYS: tuple[str, ...] = ("Observaciones", "Observacion", "Notas", "Condición")
EQUIPMENT_TYPE_KEYS: tuple[str, ...] = ("Tipo_de_TI", "Tipo")

USER_ID_KEYS: tuple[str, ...] = ("Usuario_ID", "ID")
USER_NAME_KEYS: tuple[str, ...] = ("Nombre_Completo", "Nombre")
USER_ROLE_KEYS: tuple[str, ...] = ("Tipo_Usuario", "Rol")
USER_AREA_KEYS: tuple[str, ...] = ("Área_o_Proyecto", "Area")
USER_EMAIL_KEYS: tuple[str, ...] = ("Email", "Correo")
USER_ACTIVE_KEYS: tuple[str, ...] = ("Activo", "Active")

LOG_ID_KEYS: tuple[str, ...] = ("ID", "SessionID")
LOG_PROJECT_KEYS: tuple[str, ...] = ("Proyecto", "Project")
LOG_USER_KEYS: tuple[str, ...] = ("UsuarioID", "UserID")
LOG_TYPE_KEYS: tuple[str, ...] = ("Tipo", "Type")
LOG_START_KEYS: tuple[str, ...] = ("Inicio", "Start")
LOG_END_KEYS: tuple[str, ...] = ("Fin", "End")
LOG_ITEMS_KEYS: tuple[str, ...] = ("Equipos", "Items")
LOG_OBSERVATIONS_KEYS: tuple[str, ...] = ("Observaciones", "Observations")
