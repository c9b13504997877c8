# Importe tous les modèles pour enregistrer leurs tables dans Base.metadata
# avant que SQLAlchemy tente de résoudre les clés étrangères inter-modèles.
# Sans cet import, les FK comme student_internships.preceptor_id → field_preceptors.id
# échouent avec NoReferencedTableError si agency.py n'est pas chargé.

from app.models.user import User  # noqa: F401
from app.models.student import Cohort, Student  # noqa: F401  doit précéder internship
from app.models.agency import Agency, FieldPreceptor  # noqa: F401
from app.models.internship import StudentInternship  # noqa: F401
from app.models.compliance import ComplianceRecord  # noqa: F401
from app.models.alert_notification import AlertNotification  # noqa: F401
