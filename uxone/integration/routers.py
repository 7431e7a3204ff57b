MOBILE_DB = 'mobile'
READ_ONLY_DBS = ('jde',)
MOBILE_APP_LABEL = 'integration'


class MobileDatabaseRouter:
    """
    Sends the integration app's models to the mobile database.

    Everything else stays on 'default'; nothing is ever migrated onto the
    read-only JDE connection.
    """

    def db_for_read(self, model, **hints):
        if model._meta.app_label == MOBILE_APP_LABEL:
            return MOBILE_DB
        return None

    def db_for_write(self, model, **hints):
        if model._meta.app_label == MOBILE_APP_LABEL:
            return MOBILE_DB
        return None

    def allow_relation(self, obj1, obj2, **hints):
        in_mobile = [obj._meta.app_label == MOBILE_APP_LABEL for obj in (obj1, obj2)]
        if all(in_mobile):
            return True
        if any(in_mobile):
            return False
        return None

    def allow_migrate(self, db, app_label, model_name=None, **hints):
        if app_label == MOBILE_APP_LABEL:
            return db == MOBILE_DB
        if db == MOBILE_DB or db in READ_ONLY_DBS:
            return False
        return None
