"""Portfolio performance and option valuation toolkit"""
