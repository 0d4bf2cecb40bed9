"""
RechargePanel Statistics Engine — pure functions, no I/O.

Components:
- time_window: symbolic range selector → half-open [start, end) window
- records: ledger read projections (orders, transactions, joined reads)
- aggregator: ledger reads → StatisticsSnapshot
- carrier: phone-number prefix → carrier
"""
