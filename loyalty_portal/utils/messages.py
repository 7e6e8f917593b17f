"""
User-facing copy (pt-BR) shown through the toast channel and the UI.
"""

# Login
CODE_SENT = 'Código enviado para seu email'
CODE_RESENT = 'Novo código enviado'
NO_POINTS_YET = 'Email não tem pontos ainda'
CODE_EXPIRED = 'Código expirado. Solicite um novo código'
CODE_INVALID = 'Código inválido'
SEND_CODE_FAILED = 'Erro ao enviar código'
VERIFY_CODE_FAILED = 'Erro ao verificar código'
RESEND_CODE_FAILED = 'Erro ao reenviar código'
EMAIL_REQUIRED = 'Informe seu email'
REQUEST_CODE_FIRST = 'Solicite um código primeiro'

# Session / dashboard
SESSION_EXPIRED = 'Sessão expirada'
SESSION_EXPIRED_RELOGIN = 'Sessão expirada. Faça login novamente'
LOAD_DATA_FAILED = 'Erro ao carregar dados'
DATA_REFRESHED = 'Dados atualizados'

# Rewards / redemption
LOAD_REWARDS_FAILED = 'Erro ao carregar recompensas'
REDEEM_SUCCESS = 'Recompensa resgatada com sucesso!'
NOT_ENOUGH_POINTS = 'Pontos insuficientes para esta recompensa'
INVALID_REWARD = 'Recompensa inválida'
MEMBER_NOT_FOUND_SUPPORT = 'Membro não encontrado. Entre em contato com o suporte'
SERVER_ERROR = 'Erro interno. Tente novamente mais tarde'
UNKNOWN_ERROR = 'Erro desconhecido'
CONNECTION_ERROR = 'Erro de conexão. Tente novamente'
REDEEM_IN_PROGRESS = 'Resgate em andamento'

# Code modal
CODE_COPIED = 'Código copiado!'
CODE_COPY_FAILED = 'Erro ao copiar código'

# Generic
INVALID_REQUEST = 'Requisição inválida'
NOT_FOUND = 'Não encontrado'
TOAST_NOT_FOUND = 'Notificação não encontrada'

# Ledger reason labels
REASON_ORDER = 'Compra realizada'
REASON_REFUND = 'Estorno'
REASON_REDEEM = 'Resgate de recompensa'

# Redemption status labels
STATUS_ACTIVE = 'Ativo'
STATUS_USED = 'Utilizado'
STATUS_EXPIRED = 'Expirado'
