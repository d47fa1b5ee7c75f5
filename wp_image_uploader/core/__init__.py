"""
コアロジックモジュール
"""
