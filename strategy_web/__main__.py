from strategy_web.app_factory import create_app

if __name__ == "__main__":
    app = create_app()
    app.run(host=app.config["HOST"], port=app.config["PORT"], debug=app.config["DEBUG"])

#############################
#
# Key design patterns used
# •	Application Factory: create_app() builds the app and dependencies.
# •	Dependency Injection (manual): the session, stores and exchange are passed into routes.
# •	Service Layer: StrategicSession owns every edit and the persistence fan-out.
# •	Repository: LocalPersistence maps the aggregate onto a key-value store.
# •	Strategy: KeyValueStore, FilePicker and Scheduler are swappable (tests use in-memory doubles).
#
# Request flow
# •	POST/PATCH/DELETE /api/<collection>[/<id>]
#    -> StrategicSession replaces the collection
#    -> LocalPersistence.save_local (one key per collection)
#    -> FileExchange.auto_save (debounced, only once a file is active)
# •	GET /api/scores, /api/charts
#    -> services.scoring recomputes from the current snapshot (nothing cached)
# •	POST /api/file/export|import, /api/remote/save|load
#    -> adapter returns a result object; failures come back as success=false
