"""Jobs domain - job documents, financials and client notifications"""
