"""stand ストア向けの補助ツール（取り込み・書き出し・健全性チェック）."""
