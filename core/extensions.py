from core.imports import Swagger, JWTManager, SQLAlchemy, CORS, Migrate

jwt = JWTManager()
db = SQLAlchemy()
migrate = Migrate()
swagger = Swagger()
cors = CORS()
