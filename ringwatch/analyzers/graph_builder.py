from typing import Iterable
import networkx as nx
from loguru import logger

from ringwatch.models import Account, DetectionResult, Transaction


def build_account_graph(transactions: Iterable[Transaction]) -> DetectionResult:
    """
    Build the account graph for one batch.

    Args:
        transactions: Transactions in arrival order

    Returns:
        Fresh DetectionResult owning the account graph
    """
    result = DetectionResult()
    accounts = result.accounts

    for tx in transactions:
        sender = accounts.get(tx.sender_id)
        if sender is None:
            sender = accounts[tx.sender_id] = Account(tx.sender_id)

        receiver = accounts.get(tx.receiver_id)
        if receiver is None:
            receiver = accounts[tx.receiver_id] = Account(tx.receiver_id)

        sender.outgoing_to.add(tx.receiver_id)
        sender.outgoing_count += 1
        sender.total_sent += tx.amount
        sender.transactions.append(tx)

        receiver.incoming_from.add(tx.sender_id)
        receiver.incoming_count += 1
        receiver.total_received += tx.amount
        receiver.transactions.append(tx)

        sender.transaction_count += 1
        receiver.transaction_count += 1

        result.transactions.append(tx)

    logger.info(f"Account graph built: {len(accounts)} accounts from {len(result.transactions)} transactions")
    return result


def to_networkx(result: DetectionResult) -> nx.DiGraph:
    """
    Directed view of the account graph built from outgoing edges.

    Args:
        result: Detection context holding accounts and transactions

    Returns:
        NetworkX directed graph with amount_sum and tx_count on every edge
    """
    G = nx.DiGraph()
    G.add_nodes_from(result.accounts.keys())

    for account_id, account in result.accounts.items():
        for receiver_id in account.outgoing_to:
            G.add_edge(account_id, receiver_id, amount_sum=0.0, tx_count=0)

    for tx in result.transactions:
        if G.has_edge(tx.sender_id, tx.receiver_id):
            edge = G[tx.sender_id][tx.receiver_id]
            edge['amount_sum'] += tx.amount
            edge['tx_count'] += 1

    return G
