"""
SIGNAL wallet scan DAG.
Initializes the database schema, then runs one wallet discovery scan.
"""

from datetime import datetime, timedelta
from airflow import DAG
from airflow.operators.empty import EmptyOperator
from airflow.operators.python import PythonOperator


def init_database(**context):
    """Initialize database tables."""
    from signal_scanner.database.connection import initialize_database
    return initialize_database()


def run_wallet_scan(**context):
    """Wrapper function to import and run the wallet scan task."""
    from signal_scanner.tasks.wallet_scan import process_wallet_scan
    result = process_wallet_scan(**context)
    if not result.get('success'):
        raise RuntimeError(f"Wallet scan failed: {result.get('error')}")
    return result


default_args = {
    'owner': 'signal',
    'depends_on_past': False,
    'start_date': datetime(2025, 1, 1),
    'email_on_failure': False,
    'email_on_retry': False,
    'retries': 2,
    'retry_delay': timedelta(minutes=5),
}

dag = DAG(
    'signal_wallet_scan',
    default_args=default_args,
    description='Discover profitable Solana wallets from trending tokens',
    schedule=timedelta(hours=2),
    catchup=False,
    max_active_runs=1,
    tags=['solana', 'wallets', 'signal']
)

start_scan = EmptyOperator(
    task_id='start_scan',
    dag=dag
)

init_db_task = PythonOperator(
    task_id='init_database',
    python_callable=init_database,
    dag=dag,
    execution_timeout=timedelta(minutes=5)
)

wallet_scan_task = PythonOperator(
    task_id='wallet_scan',
    python_callable=run_wallet_scan,
    dag=dag,
    execution_timeout=timedelta(minutes=30)
)

end_scan = EmptyOperator(
    task_id='end_scan',
    dag=dag
)

start_scan >> init_db_task >> wallet_scan_task >> end_scan
