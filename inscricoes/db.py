# inscricoes/db.py
import logging

from django.db import DatabaseError, connection

logger = logging.getLogger(__name__)


def com_retry_prepared_statement(operacao, tentativas: int = 1):
    """
    Executa ``operacao()`` e, se o banco reclamar de "prepared statement"
    (pooler em modo transação derrubando o statement), fecha a conexão e
    tenta de novo. Qualquer outro erro sobe direto.

    ``operacao`` precisa avaliar a queryset (``list(...)``, ``count()``),
    senão a consulta só roda fora do retry.
    """
    tentativa = 0
    while True:
        try:
            return operacao()
        except DatabaseError as e:
            if "prepared statement" not in str(e) or tentativa >= tentativas:
                raise
            tentativa += 1
            logger.warning("Erro de prepared statement, reconectando (tentativa %s): %s", tentativa, e)
            connection.close()
